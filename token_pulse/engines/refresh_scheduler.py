"""
TOKEN PULSE — Refresh Scheduler
Every tick: fan out to all sources concurrently, reconcile, store the new
snapshot under the canonical key and push it to subscribers.
"""
import asyncio
import time
from typing import Any, Dict, List, Optional

from token_pulse.api.broadcast import Broadcaster, PRICE_UPDATE_EVENT
from token_pulse.config.settings import SchedulerSettings, CacheSettings, get_settings
from token_pulse.data.adapters.base import BaseSourceAdapter
from token_pulse.data.cache.token_cache import TokenCache, TOKENS_ALL_KEY, token_key
from token_pulse.data.merger import dedupe_tokens, merge_tokens
from token_pulse.data.models import TokenRecord, records_to_dicts
from token_pulse.utils.helpers import utc_timestamp
from token_pulse.utils.logger import get_logger

logger = get_logger("refresh_scheduler")


class RefreshScheduler:
    """
    Owns the write path to the canonical snapshot.

    A failed source call contributes nothing to that tick; a failed cache write
    or publish is logged and the tick still completes. Failed ticks are not
    retried, the next tick supersedes them.
    """

    def __init__(
        self,
        pair_source: BaseSourceAdapter,
        registry_source: BaseSourceAdapter,
        cache: TokenCache,
        broadcaster: Broadcaster,
        scheduler_settings: Optional[SchedulerSettings] = None,
        cache_settings: Optional[CacheSettings] = None,
    ):
        settings = get_settings()
        self.pair_source = pair_source
        self.registry_source = registry_source
        self.cache = cache
        self.broadcaster = broadcaster
        self.settings = scheduler_settings or settings.scheduler
        self.cache_settings = cache_settings or settings.cache
        self._task: Optional[asyncio.Task] = None
        self._ticks_completed = 0
        self._last_tick_at: Optional[str] = None
        self._last_snapshot_size = 0
        self._last_tick_duration = 0.0

    # --- Lifecycle ---

    async def start(self) -> None:
        """Spawn the refresh loop. The initial tick runs as its first iteration."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="token-refresh-loop")
        logger.info(
            "refresh_scheduler_started",
            interval=self.settings.refresh_interval_seconds,
            queries=self.settings.worker_queries,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("refresh_scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # --- Tick ---

    async def _gather_sources(self) -> tuple:
        queries = list(self.settings.worker_queries)
        tasks = [self.pair_source.fetch(q) for q in queries]
        tasks.append(self.registry_source.fetch(self.settings.default_query))

        # Join barrier: a slow source delays the tick, it never aborts it
        results = await asyncio.gather(*tasks, return_exceptions=True)

        pair_records: List[TokenRecord] = []
        for query, result in zip(queries, results[: len(queries)]):
            if isinstance(result, list):
                pair_records.extend(result)
            else:
                logger.warning("pair_query_failed", query=query, error=str(result))

        registry_result = results[len(queries)]
        if isinstance(registry_result, list):
            registry_records = registry_result
        else:
            logger.warning(
                "registry_query_failed",
                query=self.settings.default_query,
                error=str(registry_result),
            )
            registry_records = []

        return pair_records, registry_records

    async def run_tick(self) -> List[TokenRecord]:
        """Execute one refresh cycle and return the snapshot it produced."""
        started = time.monotonic()
        try:
            pair_records, registry_records = await self._gather_sources()

            # The same token shows up under several queries
            unique_pairs = dedupe_tokens(pair_records)
            snapshot = merge_tokens(unique_pairs, registry_records)
            payload = records_to_dicts(snapshot)

            await self._store(payload)
            await self._publish(payload)
        finally:
            self._last_tick_duration = time.monotonic() - started

        self._ticks_completed += 1
        self._last_tick_at = utc_timestamp()
        self._last_snapshot_size = len(snapshot)
        logger.info(
            "tick_completed",
            tokens=len(snapshot),
            pair_records=len(pair_records),
            unique_pairs=len(unique_pairs),
            registry_records=len(registry_records),
            duration_seconds=round(self._last_tick_duration, 3),
        )
        return snapshot

    async def _store(self, payload: List[Dict[str, Any]]) -> None:
        try:
            await self.cache.set(TOKENS_ALL_KEY, payload, self.cache_settings.snapshot_ttl_seconds)
            # Per-token mirrors for point lookups
            mirrors = {token_key(item["token_address"]): item for item in payload}
            await self.cache.set_many(mirrors, self.cache_settings.token_ttl_seconds)
        except Exception as e:
            logger.error("snapshot_store_failed", error=str(e), error_type=type(e).__name__)

    async def _publish(self, payload: List[Dict[str, Any]]) -> None:
        try:
            await self.broadcaster.publish(PRICE_UPDATE_EVENT, payload)
        except Exception as e:
            logger.error("snapshot_publish_failed", error=str(e), error_type=type(e).__name__)

    async def _safe_tick(self) -> None:
        try:
            await self.run_tick()
        except Exception:
            logger.exception("tick_failed")

    async def _run_loop(self) -> None:
        """Fixed cadence: sleep whatever remains of the interval after a tick."""
        interval = self.settings.refresh_interval_seconds
        if self.settings.run_initial_tick:
            await self._safe_tick()
        while True:
            await asyncio.sleep(max(0.0, interval - self._last_tick_duration))
            await self._safe_tick()

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "ticks_completed": self._ticks_completed,
            "last_tick_at": self._last_tick_at,
            "last_snapshot_size": self._last_snapshot_size,
            "last_tick_duration_seconds": round(self._last_tick_duration, 3),
            "interval_seconds": self.settings.refresh_interval_seconds,
        }
