"""
Portfolio and watchlist records.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Position(BaseModel):
    """A holding: quantity bought at an average price."""

    id: str = Field(default_factory=_new_id)
    symbol: str
    name: str = ""
    quantity: float = Field(gt=0)
    average_price: float = Field(ge=0)
    purchase_date: datetime = Field(default_factory=_utcnow)

    @property
    def total_investment(self) -> float:
        return self.quantity * self.average_price

    def current_value(self, price: float) -> float:
        return self.quantity * price

    def profit_loss(self, price: float) -> float:
        return self.current_value(price) - self.total_investment

    def profit_loss_percent(self, price: float) -> float:
        if self.total_investment == 0:
            return 0.0
        return self.profit_loss(price) / self.total_investment * 100


class WatchlistItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    symbol: str
    name: str = ""
    added_date: datetime = Field(default_factory=_utcnow)
    sort_order: int = 0


@dataclass
class PortfolioSummary:
    """Totals across all positions at a given set of prices."""

    positions: int
    total_investment: float
    current_value: float

    @property
    def profit_loss(self) -> float:
        return self.current_value - self.total_investment

    @property
    def profit_loss_percent(self) -> float:
        if self.total_investment == 0:
            return 0.0
        return self.profit_loss / self.total_investment * 100
