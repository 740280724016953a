"""
SMPP Session
============
Session interface consumed by the bridge and its smpplib implementation.
"""

from .base import (
    EVENTS_CLOSED,
    ConnectionEvent,
    ConnectionStatus,
    MessageHandler,
    ShortMessage,
    SmppSession,
)
from .exceptions import (
    NotConnectedError,
    SessionError,
    SubmitRejectedError,
    SubmitTimeoutError,
)
from .smpplib_session import SmppLibSession, message_from_pdu, submit_params

__all__ = [
    "EVENTS_CLOSED",
    "ConnectionEvent",
    "ConnectionStatus",
    "MessageHandler",
    "ShortMessage",
    "SmppSession",
    "NotConnectedError",
    "SessionError",
    "SubmitRejectedError",
    "SubmitTimeoutError",
    "SmppLibSession",
    "message_from_pdu",
    "submit_params",
]
