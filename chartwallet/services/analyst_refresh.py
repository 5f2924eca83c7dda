"""
AnalystRefreshService - twice-daily analyst rating refresh (APScheduler).
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Optional

import pytz
from apscheduler.events import EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pydantic import ValidationError as PydanticValidationError

from chartwallet.adapters.fmp import FMPClient
from chartwallet.analytics.analyst import AnalystRecommendation
from chartwallet.core.config import AnalystConfig
from chartwallet.core.exceptions import AdapterError, ChartWalletError
from chartwallet.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "analyst.recommendations"
UPDATED_KEY = "analyst.last_update"


class AnalystRefreshService:
    """
    Refreshes analyst recommendations for the tracked symbols at fixed local
    hours and caches them in the key-value store.
    """

    def __init__(
        self,
        client: FMPClient,
        store: KeyValueStore,
        symbols: Callable[[], List[str]],
        config: Optional[AnalystConfig] = None,
    ) -> None:
        config = config or AnalystConfig()
        if not config.update_hours:
            raise ValueError("update_hours must not be empty")

        self._client = client
        self._store = store
        self._symbols = symbols
        self._hours = sorted(set(config.update_hours))
        self._tz = pytz.timezone(config.timezone)
        self._lock = asyncio.Lock()

        self._trigger = CronTrigger(
            hour=",".join(str(h) for h in self._hours), minute=0, timezone=self._tz
        )
        self._scheduler = AsyncIOScheduler(timezone=self._tz)
        self._job = None

        self._recommendations: Dict[str, AnalystRecommendation] = {}
        self._last_update: Optional[datetime] = None
        self._load_cache()

    @property
    def trigger(self) -> CronTrigger:
        return self._trigger

    @property
    def last_update(self) -> Optional[datetime]:
        return self._last_update

    @property
    def recommendations(self) -> Dict[str, AnalystRecommendation]:
        return dict(self._recommendations)

    def get(self, symbol: str) -> Optional[AnalystRecommendation]:
        return self._recommendations.get(symbol.upper())

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _load_cache(self) -> None:
        raw = self._store.get(CACHE_KEY) or {}
        for symbol, data in raw.items():
            try:
                self._recommendations[symbol] = AnalystRecommendation.model_validate(data)
            except PydanticValidationError as exc:
                logger.warning("[AnalystRefresh] Dropping cached entry for %s: %s", symbol, exc)

        stamp = self._store.get(UPDATED_KEY)
        if stamp:
            try:
                self._last_update = datetime.fromisoformat(stamp)
            except (TypeError, ValueError):
                logger.warning("[AnalystRefresh] Invalid last-update stamp: %r", stamp)

        if self._recommendations:
            logger.info(
                "[AnalystRefresh] Loaded %d cached recommendations (last update %s)",
                len(self._recommendations),
                self._last_update,
            )

    def _save_cache(self) -> None:
        self._store.set(
            CACHE_KEY,
            {symbol: rec.model_dump(mode="json") for symbol, rec in self._recommendations.items()},
        )
        if self._last_update is not None:
            self._store.set(UPDATED_KEY, self._last_update.isoformat())

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def _localize(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(self._tz)
        if now.tzinfo is None:
            now = pytz.utc.localize(now)
        return now.astimezone(self._tz)

    def _slot(self, day: date, hour: int) -> datetime:
        return self._tz.localize(datetime.combine(day, time(hour)))

    def next_update_time(self, now: Optional[datetime] = None) -> datetime:
        """First update slot strictly after ``now``."""
        local = self._localize(now)
        for day in (local.date(), local.date() + timedelta(days=1)):
            for hour in self._hours:
                slot = self._slot(day, hour)
                if slot > local:
                    return slot
        raise AssertionError("unreachable: tomorrow always has a slot")

    def latest_slot(self, now: Optional[datetime] = None) -> datetime:
        """Most recent update slot at or before ``now``."""
        local = self._localize(now)
        for day in (local.date(), local.date() - timedelta(days=1)):
            for hour in reversed(self._hours):
                slot = self._slot(day, hour)
                if slot <= local:
                    return slot
        raise AssertionError("unreachable: yesterday always has a slot")

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        if self._last_update is None:
            return True
        return self._last_update < self.latest_slot(now)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _fetch_all(self, symbols: List[str]) -> Dict[str, AnalystRecommendation]:
        results: Dict[str, AnalystRecommendation] = {}
        for symbol in symbols:
            try:
                recommendation = self._client.analyst_recommendation(symbol)
            except AdapterError as exc:
                logger.warning("[AnalystRefresh] %s failed: %s", symbol, exc)
                continue
            if recommendation is not None:
                results[symbol.upper()] = recommendation
        return results

    async def refresh(self) -> Dict[str, AnalystRecommendation]:
        """
        Fetch recommendations for every tracked symbol.

        The last-update stamp only advances when at least one symbol
        succeeded (or there was nothing to fetch).
        """
        async with self._lock:
            if not self._client.configured:
                logger.warning("[AnalystRefresh] FMP API key not configured; skipping refresh")
                return {}

            symbols = [s.upper() for s in self._symbols()]
            loop = asyncio.get_running_loop()
            results = await loop.run_in_executor(None, self._fetch_all, symbols)

            if symbols and not results:
                logger.warning("[AnalystRefresh] No recommendations fetched for %d symbols", len(symbols))
                return results

            self._recommendations.update(results)
            self._last_update = datetime.now(pytz.utc)
            self._save_cache()
            logger.info(
                "[AnalystRefresh] Updated %d/%d symbols, next update %s",
                len(results),
                len(symbols),
                self.next_update_time(),
            )
            return results

    async def _run_job(self) -> None:
        try:
            await self.refresh()
        except ChartWalletError as exc:
            logger.error("[AnalystRefresh] Scheduled refresh failed: %s", exc)

    def _on_job_missed(self, event) -> None:
        logger.warning(
            "[AnalystRefresh] Job missed: %s at %s",
            event.job_id,
            getattr(event, "scheduled_run_time", None),
        )

    async def start(self) -> None:
        """Start the schedule, refreshing at once if the cache predates the last slot."""
        if self._job is None:
            self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
            self._job = self._scheduler.add_job(
                self._run_job,
                trigger=self._trigger,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=300,
            )
        if not self._scheduler.running:
            self._scheduler.start()

        if self.is_stale():
            logger.info("[AnalystRefresh] Cache is stale; refreshing now")
            await self._run_job()

    def stop(self) -> None:
        try:
            self._scheduler.shutdown(wait=False)
        except Exception as exc:
            logger.debug("[AnalystRefresh] Shutdown skipped: %s", exc)
