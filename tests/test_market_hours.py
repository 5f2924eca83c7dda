"""
Tests for the US market clock.
"""

from datetime import datetime

import pytest
import pytz

from chartwallet.core.market_hours import NEW_YORK, MarketHours, MarketStatus


def ny(*args):
    return NEW_YORK.localize(datetime(*args))


class TestMarketHours:
    @pytest.mark.parametrize(
        "moment,expected",
        [
            (ny(2024, 6, 10, 9, 29), MarketStatus.CLOSED),
            (ny(2024, 6, 10, 9, 30), MarketStatus.OPEN),
            (ny(2024, 6, 10, 15, 59), MarketStatus.OPEN),
            (ny(2024, 6, 10, 16, 0), MarketStatus.CLOSED),
            (ny(2024, 6, 8, 12, 0), MarketStatus.WEEKEND),
            (ny(2024, 6, 9, 12, 0), MarketStatus.WEEKEND),
        ],
    )
    def test_status(self, moment, expected):
        assert MarketHours().status(moment) is expected

    def test_other_timezone_converted(self):
        # 23:00 Seoul on Monday = 10:00 New York (EDT)
        seoul = pytz.timezone("Asia/Seoul").localize(datetime(2024, 6, 10, 23, 0))
        assert MarketHours().is_open(seoul)

    def test_naive_is_utc(self):
        # 14:00 UTC = 10:00 EDT
        assert MarketHours().is_open(datetime(2024, 6, 10, 14, 0))
        assert not MarketHours().is_open(datetime(2024, 6, 10, 12, 0))

    def test_winter_offset(self):
        # 14:00 UTC = 09:00 EST, still closed
        assert not MarketHours().is_open(datetime(2024, 1, 8, 14, 0))
        assert MarketHours().is_open(datetime(2024, 1, 8, 14, 30))
