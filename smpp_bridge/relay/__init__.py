"""
Telegram Relay
==============
Outbound side of the inbound path: delivers relay text to Telegram.
"""

from .client import TelegramRelayClient, FILE_MARKER
from .exceptions import RelayError

__all__ = [
    "TelegramRelayClient",
    "FILE_MARKER",
    "RelayError",
]
