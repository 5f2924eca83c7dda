"""
Portfolio & watchlist manager backed by the key-value store.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from chartwallet.core.config import POPULAR_STOCKS
from chartwallet.core.exceptions import (
    InvalidPriceError,
    InvalidQuantityError,
    InvalidSymbolError,
    PositionNotFoundError,
    ValidationError,
    WatchlistFullError,
)
from chartwallet.portfolio.models import PortfolioSummary, Position, WatchlistItem
from chartwallet.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

POSITIONS_KEY = "portfolio.positions"
WATCHLIST_KEY = "portfolio.watchlist"
MAX_WATCHLIST_ITEMS = 500


def normalize_symbol(symbol: str) -> str:
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise InvalidSymbolError("Symbol must not be empty", details={"symbol": symbol})
    return cleaned


def _check_quantity(quantity: float) -> None:
    if not isinstance(quantity, (int, float)) or math.isnan(quantity) or quantity <= 0:
        raise InvalidQuantityError("Quantity must be greater than zero", details={"quantity": quantity})


def _check_price(price: float) -> None:
    if not isinstance(price, (int, float)) or math.isnan(price) or price < 0:
        raise InvalidPriceError("Price must not be negative", details={"price": price})


class PortfolioManager:
    """
    Positions and watchlist, persisted after every change.

    A store without a watchlist entry is seeded with the popular stocks.
    """

    def __init__(self, store: KeyValueStore, seed_watchlist: bool = True):
        self._store = store
        self.positions: List[Position] = self._load(POSITIONS_KEY, Position)
        self.watchlist: List[WatchlistItem] = self._load(WATCHLIST_KEY, WatchlistItem)
        self.watchlist.sort(key=lambda item: item.sort_order)

        if seed_watchlist and store.get(WATCHLIST_KEY) is None:
            self._seed_watchlist()

    def _load(self, key: str, model):
        records = []
        for raw in self._store.get(key) or []:
            try:
                records.append(model.model_validate(raw))
            except PydanticValidationError as exc:
                logger.warning("[Portfolio] Skipping invalid %s record: %s", key, exc)
        return records

    def _save_positions(self) -> None:
        self._store.set(POSITIONS_KEY, [p.model_dump(mode="json") for p in self.positions])

    def _save_watchlist(self) -> None:
        self._store.set(WATCHLIST_KEY, [w.model_dump(mode="json") for w in self.watchlist])

    def _seed_watchlist(self) -> None:
        self.watchlist = [
            WatchlistItem(symbol=symbol, name=name, sort_order=i)
            for i, (symbol, name) in enumerate(POPULAR_STOCKS)
        ]
        self._save_watchlist()
        logger.info("[Portfolio] Seeded watchlist with %d popular stocks", len(self.watchlist))

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def add_position(
        self,
        symbol: str,
        quantity: float,
        average_price: float,
        name: str = "",
        purchase_date: Optional[datetime] = None,
    ) -> Position:
        symbol = normalize_symbol(symbol)
        _check_quantity(quantity)
        _check_price(average_price)

        fields = {"symbol": symbol, "name": name, "quantity": quantity, "average_price": average_price}
        if purchase_date is not None:
            fields["purchase_date"] = purchase_date
        position = Position(**fields)

        self.positions.append(position)
        self._save_positions()
        logger.info("[Portfolio] Added %s x%s @ %.2f", symbol, quantity, average_price)
        return position

    def get_position(self, position_id: str) -> Position:
        for position in self.positions:
            if position.id == position_id:
                return position
        raise PositionNotFoundError("Position not found", details={"id": position_id})

    def remove_position(self, position_id: str) -> bool:
        before = len(self.positions)
        self.positions = [p for p in self.positions if p.id != position_id]
        if len(self.positions) == before:
            return False
        self._save_positions()
        return True

    def update_position(self, position_id: str, quantity: float, average_price: float) -> Position:
        _check_quantity(quantity)
        _check_price(average_price)
        position = self.get_position(position_id)
        position.quantity = quantity
        position.average_price = average_price
        self._save_positions()
        return position

    def summary(self, prices: Dict[str, float]) -> PortfolioSummary:
        """
        Totals at ``prices``. Positions without a price are valued at cost.
        """
        invested = 0.0
        value = 0.0
        for position in self.positions:
            price = prices.get(position.symbol, position.average_price)
            invested += position.total_investment
            value += position.current_value(price)
        return PortfolioSummary(len(self.positions), invested, value)

    # ------------------------------------------------------------------
    # Watchlist
    # ------------------------------------------------------------------

    def add_to_watchlist(self, symbol: str, name: str = "") -> WatchlistItem:
        symbol = normalize_symbol(symbol)
        if any(item.symbol == symbol for item in self.watchlist):
            raise ValidationError("Symbol already in watchlist", details={"symbol": symbol})
        if len(self.watchlist) >= MAX_WATCHLIST_ITEMS:
            raise WatchlistFullError(
                "Watchlist is full", details={"max_items": MAX_WATCHLIST_ITEMS}
            )

        next_order = max((item.sort_order for item in self.watchlist), default=-1) + 1
        item = WatchlistItem(symbol=symbol, name=name, sort_order=next_order)
        self.watchlist.append(item)
        self._save_watchlist()
        return item

    def remove_from_watchlist(self, symbol: str) -> bool:
        symbol = normalize_symbol(symbol)
        before = len(self.watchlist)
        self.watchlist = [item for item in self.watchlist if item.symbol != symbol]
        if len(self.watchlist) == before:
            return False
        self._save_watchlist()
        return True

    def move_watchlist_item(self, source: int, destination: int) -> None:
        """Move the item at ``source`` to ``destination`` and renumber 0..n-1."""
        size = len(self.watchlist)
        if not (0 <= source < size and 0 <= destination < size):
            raise ValidationError(
                "Watchlist index out of range",
                details={"source": source, "destination": destination, "size": size},
            )
        item = self.watchlist.pop(source)
        self.watchlist.insert(destination, item)
        for order, entry in enumerate(self.watchlist):
            entry.sort_order = order
        self._save_watchlist()

    def all_symbols(self) -> List[str]:
        """Unique symbols across positions and watchlist (watchlist order first)."""
        seen: Dict[str, None] = {}
        for item in self.watchlist:
            seen.setdefault(item.symbol, None)
        for position in self.positions:
            seen.setdefault(position.symbol, None)
        return list(seen)
