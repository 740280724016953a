"""
SMPP Telegram Bridge
====================
Relays SMPP deliveries to a Telegram chat and submits HTTP-posted messages
over the same SMPP session.
"""

__version__ = "1.0.0"

# Configuration
from smpp_bridge.config import BridgeConfig, ConfigError, load_config

# Messaging
from smpp_bridge.messaging import (
    InboundMessage,
    InboundMessageHandler,
    MessageKind,
    build_relay_text,
    decode_text,
    encode_text,
)

# Relay
from smpp_bridge.relay import TelegramRelayClient

# Rate Limiting
from smpp_bridge.rate_limit import TokenBucketLimiter, RateLimitInfo

# Session
from smpp_bridge.session import (
    ConnectionEvent,
    ConnectionStatus,
    NotConnectedError,
    SessionError,
    ShortMessage,
    SmppLibSession,
    SmppSession,
)

# Status
from smpp_bridge.status import ConnectionStatusReporter

__all__ = [
    "__version__",
    # Configuration
    "BridgeConfig",
    "ConfigError",
    "load_config",
    # Messaging
    "InboundMessage",
    "InboundMessageHandler",
    "MessageKind",
    "build_relay_text",
    "decode_text",
    "encode_text",
    # Relay
    "TelegramRelayClient",
    # Rate Limiting
    "TokenBucketLimiter",
    "RateLimitInfo",
    # Session
    "ConnectionEvent",
    "ConnectionStatus",
    "NotConnectedError",
    "SessionError",
    "ShortMessage",
    "SmppLibSession",
    "SmppSession",
    # Status
    "ConnectionStatusReporter",
]
