"""
SMPP Session Interface
======================
What the bridge needs from a protocol session, independent of the library.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from smpp_bridge.messaging.models import InboundMessage

MessageHandler = Callable[[InboundMessage], Awaitable[Optional[str]]]


class ConnectionStatus(str, Enum):
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    CONNECTION_FAILED = "Connection failed"
    BIND_FAILED = "Bind failed"


@dataclass(frozen=True)
class ConnectionEvent:
    """A transition of the SMPP link."""
    status: ConnectionStatus
    error: Optional[str] = None

    def __str__(self) -> str:
        if self.error:
            return f"{self.status.value}: {self.error}"
        return self.status.value


@dataclass(frozen=True)
class ShortMessage:
    """An outbound submit_sm request."""
    source: str
    destination: str
    text: str
    register_receipt: bool = True


# Put on the event queue when the session shuts down
EVENTS_CLOSED = None


class SmppSession(ABC):
    """
    A persistent SMPP transceiver session.

    Implementations deliver inbound PDUs to the handler given at
    construction and publish ConnectionEvent values on the queue returned
    by ``start()``; ``None`` on that queue means the session is closed.
    """

    @abstractmethod
    async def start(self) -> "asyncio.Queue[Optional[ConnectionEvent]]":
        """Bind and keep the session up; returns the status event queue."""

    @abstractmethod
    async def submit(self, message: ShortMessage) -> str:
        """
        Submit a short message.

        Returns:
            Message id assigned by the SMSC

        Raises:
            NotConnectedError: session is not bound
            SessionError: any other submission failure
        """

    @abstractmethod
    async def close(self) -> None:
        """Unbind, stop reconnecting and close the event queue."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True while bound to the SMSC."""
