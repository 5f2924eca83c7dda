"""
US equity market clock (NYSE/NASDAQ regular session).
"""

from __future__ import annotations

from datetime import datetime, time
from enum import Enum
from typing import Optional

import pytz

NEW_YORK = pytz.timezone("America/New_York")


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    WEEKEND = "weekend"


class MarketHours:
    """
    Regular session: Monday-Friday, 09:30-16:00 America/New_York.

    Exchange holidays are not modelled; the stream simply stays quiet on
    those days and the polling fallback keeps quotes fresh.
    """

    def __init__(
        self,
        open_time: time = time(9, 30),
        close_time: time = time(16, 0),
        tz=NEW_YORK,
    ):
        self.open_time = open_time
        self.close_time = close_time
        self.tz = tz

    def _localize(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(self.tz)
        if now.tzinfo is None:
            now = pytz.utc.localize(now)
        return now.astimezone(self.tz)

    def status(self, now: Optional[datetime] = None) -> MarketStatus:
        local = self._localize(now)
        if local.weekday() >= 5:
            return MarketStatus.WEEKEND
        if self.open_time <= local.time() < self.close_time:
            return MarketStatus.OPEN
        return MarketStatus.CLOSED

    def is_open(self, now: Optional[datetime] = None) -> bool:
        return self.status(now) == MarketStatus.OPEN
