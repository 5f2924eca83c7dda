"""
Analyst recommendation summary.

Counts of strong buy / buy / hold / sell / strong sell ratings are collapsed
into a weighted score (strong buy = 5 ... strong sell = 1) and bucketed into
a single Rating.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

RATING_WEIGHTS = {
    "strong_buy": 5,
    "buy": 4,
    "hold": 3,
    "sell": 2,
    "strong_sell": 1,
}


class Rating(str, Enum):
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"
    NONE = "none"

    @classmethod
    def from_average(cls, average: Optional[float]) -> "Rating":
        if average is None:
            return cls.NONE
        if average >= 4.5:
            return cls.STRONG_BUY
        if average >= 3.5:
            return cls.BUY
        if average >= 2.5:
            return cls.HOLD
        if average >= 1.5:
            return cls.SELL
        if average >= 0.1:
            return cls.STRONG_SELL
        return cls.NONE

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Rating":
        """Map a provider consensus label ("Strong Buy", "Neutral", ...) to a Rating."""
        if not label:
            return cls.NONE
        normalized = label.strip().lower().replace("-", " ").replace("_", " ")
        return _LABELS.get(normalized, cls.NONE)

    @property
    def label(self) -> str:
        return _DISPLAY[self]


_LABELS = {
    "strong buy": Rating.STRONG_BUY,
    "buy": Rating.BUY,
    "outperform": Rating.BUY,
    "hold": Rating.HOLD,
    "neutral": Rating.HOLD,
    "sell": Rating.SELL,
    "underperform": Rating.SELL,
    "strong sell": Rating.STRONG_SELL,
}

_DISPLAY = {
    Rating.STRONG_BUY: "Strong Buy",
    Rating.BUY: "Buy",
    Rating.HOLD: "Hold",
    Rating.SELL: "Sell",
    Rating.STRONG_SELL: "Strong Sell",
    Rating.NONE: "N/A",
}


class AnalystRecommendation(BaseModel):
    """Rating counts and price targets for one symbol."""

    symbol: str
    strong_buy: int = Field(default=0, ge=0)
    buy: int = Field(default=0, ge=0)
    hold: int = Field(default=0, ge=0)
    sell: int = Field(default=0, ge=0)
    strong_sell: int = Field(default=0, ge=0)
    target_price: Optional[float] = None
    target_price_high: Optional[float] = None
    target_price_low: Optional[float] = None

    @property
    def total(self) -> int:
        return self.strong_buy + self.buy + self.hold + self.sell + self.strong_sell

    @property
    def average_score(self) -> Optional[float]:
        """Weighted mean rating in [1, 5], or None when nobody rated the stock."""
        if self.total == 0:
            return None
        weighted = sum(getattr(self, field) * w for field, w in RATING_WEIGHTS.items())
        return weighted / self.total

    @property
    def rating(self) -> Rating:
        return Rating.from_average(self.average_score)

    def upside_percent(self, current_price: float) -> Optional[float]:
        """Percent gap between the mean target price and ``current_price``."""
        if self.target_price is None or current_price <= 0:
            return None
        return (self.target_price - current_price) / current_price * 100

    @classmethod
    def from_fmp(cls, payload: Dict[str, Any]) -> "AnalystRecommendation":
        """
        Build from either FMP payload shape:
        - v3 analyst-stock-recommendations (analystRatingsStrongBuy, ...)
        - v4 consensus/grade-summary (strongBuy, ..., avgPriceTarget)
        """

        def _first(*keys: str) -> Any:
            for key in keys:
                if payload.get(key) is not None:
                    return payload[key]
            return None

        def _count(*keys: str) -> int:
            return int(_first(*keys) or 0)

        return cls(
            symbol=str(payload.get("symbol", "")).upper(),
            strong_buy=_count("analystRatingsStrongBuy", "strongBuy"),
            buy=_count("analystRatingsbuy", "analystRatingsBuy", "buy"),
            hold=_count("analystRatingsHold", "hold"),
            sell=_count("analystRatingsSell", "sell"),
            strong_sell=_count("analystRatingsStrongSell", "strongSell"),
            target_price=_first("analystTargetPrice", "avgPriceTarget"),
            target_price_high=_first("analystTargetPriceHigh", "highPriceTarget"),
            target_price_low=_first("analystTargetPriceLow", "lowPriceTarget"),
        )
