"""
Shared fixtures and fakes for bridge tests.
"""

import asyncio
from typing import List, Optional

import pytest

from smpp_bridge.config import BridgeConfig
from smpp_bridge.session import ConnectionEvent, ConnectionStatus, ShortMessage, SmppSession


class FakeSession(SmppSession):
    """In-memory session recording submissions."""

    def __init__(self, handler=None, message_id: str = "42", error: Optional[Exception] = None):
        self.handler = handler
        self.message_id = message_id
        self.error = error
        self.submitted: List[ShortMessage] = []
        self.connected = True
        self.started = False
        self.closed = False
        self.events: Optional[asyncio.Queue] = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def start(self):
        self.started = True
        self.events = asyncio.Queue()
        self.events.put_nowait(ConnectionEvent(ConnectionStatus.CONNECTED))
        return self.events

    async def submit(self, message: ShortMessage) -> str:
        self.submitted.append(message)
        if self.error is not None:
            raise self.error
        return self.message_id

    async def close(self) -> None:
        self.closed = True
        if self.events is not None:
            self.events.put_nowait(None)


class RecordingRelay:
    """Relay double recording every text it is asked to send."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.texts: List[str] = []

    async def relay(self, text: str) -> bool:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return self.result


class CountingLimiter:
    """Limiter double that never waits."""

    def __init__(self):
        self.acquired = 0

    async def acquire(self) -> float:
        self.acquired += 1
        return 0.0


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(
        name="test-bridge",
        bot_id="bot123",
        bot_key="SECRET",
        chat_id="-100500",
        address="127.0.0.1:8080",
        smpp="smsc.test:2775",
        username="esme",
        password="pw",
        debug=0,
    )


@pytest.fixture
def topic_config(config) -> BridgeConfig:
    return config.model_copy(update={"chat_type": "topic", "chat_topic": "77"})


@pytest.fixture
def relay() -> RecordingRelay:
    return RecordingRelay()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
