"""
Tests for the inbound deliver_sm handler.
"""

import codecs

import pytest

from smpp_bridge.messaging import InboundMessage, InboundMessageHandler, MessageKind, build_relay_text
from smpp_bridge.metrics import BridgeMetrics, MetricNames

from .conftest import RecordingRelay


def deliver(**fields) -> InboundMessage:
    fields.setdefault("source", "12345")
    fields.setdefault("destination", "999")
    return InboundMessage(kind=MessageKind.DELIVER_SM, **fields)


class TestRelayText:

    def test_shape(self):
        assert build_relay_text("1", "2", "x") == "SMS from 1 to 2 :\nx"


class TestInboundMessageHandler:

    @pytest.mark.asyncio
    async def test_plain_message_relayed(self, config, relay):
        handler = InboundMessageHandler(config, relay)

        line = await handler.handle(deliver(short_message=b"hello"))
        await handler.drain()

        assert line == "SMS from 12345 to 999 :\nhello"
        assert relay.texts == ["SMS from 12345 to 999 :\nhello"]

    @pytest.mark.asyncio
    async def test_payload_used_when_short_message_empty(self, config, relay):
        handler = InboundMessageHandler(config, relay)
        payload = codecs.BOM_UTF16_BE + "héllo".encode("utf-16-be")

        await handler.handle(deliver(short_message=b"", message_payload=payload, data_coding=8))
        await handler.drain()

        assert len(relay.texts) == 1
        assert relay.texts[0].endswith("héllo")

    @pytest.mark.asyncio
    async def test_short_message_wins_over_payload(self, config, relay):
        handler = InboundMessageHandler(config, relay)

        await handler.handle(deliver(short_message=b"short", message_payload=b"long payload"))
        await handler.drain()

        assert relay.texts == ["SMS from 12345 to 999 :\nshort"]

    @pytest.mark.asyncio
    async def test_short_message_wins_regardless_of_coding(self, config, relay):
        handler = InboundMessageHandler(config, relay)
        short = "ab".encode("utf-16-be")

        await handler.handle(deliver(short_message=short, message_payload=b"\x00z", data_coding=8))
        await handler.drain()

        assert relay.texts[0].endswith("ab")

    @pytest.mark.asyncio
    async def test_both_fields_empty_relays_empty_text(self, config, relay):
        handler = InboundMessageHandler(config, relay)

        await handler.handle(deliver())
        await handler.drain()

        assert relay.texts == ["SMS from 12345 to 999 :\n"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [MessageKind.DATA_SM, MessageKind.ENQUIRE_LINK, MessageKind.OTHER])
    async def test_other_kinds_ignored(self, config, relay, kind):
        metrics = BridgeMetrics()
        handler = InboundMessageHandler(config, relay, metrics=metrics)

        result = await handler.handle(InboundMessage(kind=kind, short_message=b"hello"))
        await handler.drain()

        assert result is None
        assert relay.texts == []
        assert metrics.get_counter(MetricNames.INBOUND_IGNORED) == 1

    @pytest.mark.asyncio
    async def test_relay_failure_not_propagated(self, config):
        failing = RecordingRelay(error=RuntimeError("telegram down"))
        handler = InboundMessageHandler(config, failing)

        line = await handler.handle(deliver(short_message=b"hello"))
        await handler.drain()

        assert line.endswith("hello")
        assert failing.texts == [line]
        assert handler.pending == 0

    @pytest.mark.asyncio
    async def test_delivery_receipt_relayed_like_mo(self, config, relay):
        handler = InboundMessageHandler(config, relay)
        receipt = deliver(short_message=b"id:1 stat:DELIVRD", esm_class=0x04)

        await handler.handle(receipt)
        await handler.drain()

        assert receipt.is_delivery_receipt
        assert relay.texts == ["SMS from 12345 to 999 :\nid:1 stat:DELIVRD"]

    @pytest.mark.asyncio
    async def test_quiet_debug_level(self, config, relay):
        quiet = config.model_copy(update={"debug": 3})
        handler = InboundMessageHandler(quiet, relay)

        await handler.handle(deliver(short_message=b"hello"))
        await handler.drain()

        assert not quiet.log_messages
        assert relay.texts == ["SMS from 12345 to 999 :\nhello"]
