"""
Tests for the stream message codec.
"""

from datetime import datetime, timezone

import pytest

from chartwallet.core.exceptions import MessageDecodeError
from chartwallet.realtime.messages import (
    PONG,
    MessageType,
    RequestType,
    Trade,
    decode,
    request,
)


class TestDecode:
    def test_ping(self):
        assert decode('{"type": "ping"}').type is MessageType.PING

    def test_subscribe_ack(self):
        message = decode('{"type": "subscribe", "symbol": "AAPL"}')

        assert message.type is MessageType.SUBSCRIBE_ACK
        assert message.symbol == "AAPL"

    def test_error(self):
        message = decode('{"type": "error", "msg": "Invalid token"}')

        assert message.type is MessageType.ERROR
        assert message.error == "Invalid token"

    def test_trade_frame(self):
        message = decode(
            b'{"type": "trade", "data": [{"s": "AAPL", "p": 180.25, "t": 1718035200123, "v": 100}]}'
        )

        assert message.type is MessageType.TRADE
        assert message.trades == [
            Trade(
                symbol="AAPL",
                price=180.25,
                timestamp=datetime(2024, 6, 10, 16, 0, 0, 123000, tzinfo=timezone.utc),
                volume=100.0,
            )
        ]

    def test_trade_without_volume(self):
        message = decode('{"type": "trade", "data": [{"s": "MSFT", "p": 410, "t": 0}]}')

        assert message.trades[0].volume is None
        assert message.trades[0].price == 410.0

    def test_unknown_type(self):
        message = decode('{"type": "news", "data": []}')

        assert message.type is MessageType.UNKNOWN
        assert message.raw_type == "news"

    def test_trade_without_data_is_unknown(self):
        assert decode('{"type": "trade"}').type is MessageType.UNKNOWN

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '"ping"',
            b"\xff\xfe",
            '{"type": "trade", "data": [{"s": "AAPL", "p": "abc", "t": 1}]}',
            '{"type": "trade", "data": [{"p": 1.0, "t": 1}]}',
            '{"type": "trade", "data": [{"s": "AAPL", "p": 1.0, "t": 1e400}]}',
            '{"type": "trade", "data": [{"s": "AAPL", "p": 1.0, "t": 1e30}]}',
        ],
    )
    def test_malformed(self, raw):
        with pytest.raises(MessageDecodeError):
            decode(raw)


class TestRequests:
    def test_subscribe_request(self):
        assert request(RequestType.SUBSCRIBE, "AAPL") == {"type": "subscribe", "symbol": "AAPL"}

    def test_unsubscribe_request(self):
        assert request(RequestType.UNSUBSCRIBE, "AAPL") == {"type": "unsubscribe", "symbol": "AAPL"}

    def test_pong(self):
        assert PONG == {"type": "pong"}
