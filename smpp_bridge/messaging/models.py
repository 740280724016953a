"""
Messaging Models
================
Data models for inbound SMPP messages and text encodings.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


class EncodingType(str, Enum):
    """Outbound text encodings."""
    RAW = "raw"
    UCS2 = "UCS-2"


class DataCoding(IntEnum):
    """SMPP data_coding values the bridge cares about."""
    DEFAULT = 0x00
    UCS2 = 0x08


class MessageKind(str, Enum):
    """Kinds of PDUs a session may hand to the inbound handler."""
    DELIVER_SM = "deliver_sm"
    DATA_SM = "data_sm"
    ENQUIRE_LINK = "enquire_link"
    OTHER = "other"


# esm_class bits 2-5 flag an SMSC delivery receipt
ESM_CLASS_DELIVERY_RECEIPT = 0x04

# Longest text that fits the short_message field
SHORT_MESSAGE_LIMIT = 254


@dataclass(frozen=True)
class InboundMessage:
    """An inbound PDU as seen by the bridge."""
    kind: MessageKind
    source: str = ""
    destination: str = ""
    data_coding: Optional[int] = None
    short_message: bytes = b""
    message_payload: bytes = b""
    esm_class: int = 0

    @property
    def is_delivery_receipt(self) -> bool:
        return bool(self.esm_class & ESM_CLASS_DELIVERY_RECEIPT)
