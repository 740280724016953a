"""
Connection Status Reporter
==========================
Logs SMPP link transitions for the lifetime of the session.
"""

import asyncio
from typing import Optional

import structlog

from smpp_bridge.session.base import ConnectionEvent

logger = structlog.get_logger(__name__)


class ConnectionStatusReporter:
    """
    Consumes the session's event queue until it is closed.

    The queue is usually attached after construction, once ``session.start()``
    has returned it.
    """

    def __init__(self, events: Optional["asyncio.Queue[Optional[ConnectionEvent]]"] = None):
        self.events = events
        self.last_event: Optional[ConnectionEvent] = None
        self.count = 0

    async def run(self) -> None:
        if self.events is None:
            raise RuntimeError("No status event queue attached")
        while True:
            event = await self.events.get()
            if event is None:
                logger.info("SMPP status stream closed")
                return
            self.last_event = event
            self.count += 1
            logger.info("SMPP connection status", status=str(event))
