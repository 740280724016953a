"""
Inbound Messaging
=================
Message models, text decoding and the deliver_sm handler.
"""

from .models import (
    DataCoding,
    EncodingType,
    InboundMessage,
    MessageKind,
    SHORT_MESSAGE_LIMIT,
)
from .encoding import decode_text, detect_encoding, encode_text
from .extractor import InboundMessageHandler, build_relay_text, select_source

__all__ = [
    # Models
    "DataCoding",
    "EncodingType",
    "InboundMessage",
    "MessageKind",
    "SHORT_MESSAGE_LIMIT",
    # Encoding
    "decode_text",
    "detect_encoding",
    "encode_text",
    # Handler
    "InboundMessageHandler",
    "build_relay_text",
    "select_source",
]
