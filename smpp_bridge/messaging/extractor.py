"""
Inbound Message Extractor
=========================
Turns deliver_sm PDUs into relay text and hands it to the relay client.
"""

import asyncio
from typing import Awaitable, Optional, Protocol, Set

import structlog

from smpp_bridge.config import BridgeConfig
from smpp_bridge.metrics import BridgeMetrics, MetricNames

from .encoding import decode_text
from .models import InboundMessage, MessageKind

logger = structlog.get_logger(__name__)


class Relay(Protocol):
    def relay(self, text: str) -> Awaitable[bool]: ...


def select_source(message: InboundMessage) -> bytes:
    """short_message, or message_payload when short_message is empty."""
    if message.short_message:
        return message.short_message
    return message.message_payload or b""


def build_relay_text(source: str, destination: str, text: str) -> str:
    return "SMS from " + source + " to " + destination + " :\n" + text


class InboundMessageHandler:
    """
    Handles messages delivered by the SMPP session.

    Only deliver_sm is relayed (mobile-originated messages and delivery
    receipts alike); every other kind is ignored.
    """

    def __init__(
        self,
        config: BridgeConfig,
        relay: Relay,
        metrics: Optional[BridgeMetrics] = None,
    ):
        self.config = config
        self.relay = relay
        self.metrics = metrics
        self._tasks: Set[asyncio.Task] = set()

    def extract_text(self, message: InboundMessage) -> str:
        """Decode the message text from the field that carries it."""
        raw = select_source(message)
        text = decode_text(message.data_coding, raw)
        if self.config.log_messages:
            logger.debug(
                "Decoded message text",
                short_message=message.short_message,
                message_payload=message.message_payload,
                coding=message.data_coding,
                text=text,
            )
        return text

    async def handle(self, message: InboundMessage) -> Optional[str]:
        """
        Process one inbound message.

        Returns:
            The relay line that was scheduled, or None if ignored
        """
        if self.config.log_messages:
            logger.debug("Message", message=repr(message))

        if message.kind != MessageKind.DELIVER_SM:
            self._count(MetricNames.INBOUND_IGNORED)
            return None

        self._count(MetricNames.INBOUND_RECEIVED)
        line = build_relay_text(message.source, message.destination, self.extract_text(message))

        task = asyncio.create_task(self._relay(line))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return line

    async def _relay(self, line: str) -> None:
        try:
            await self.relay.relay(line)
        except Exception:
            logger.exception("Relay to Telegram failed unexpectedly")

    async def drain(self) -> None:
        """Wait for all scheduled relay calls to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _count(self, name: str) -> None:
        if self.metrics is not None:
            self.metrics.increment(name)
