"""
Background task for periodically refreshing the update index.

Scheduling decisions are pure functions over CronState; RefreshScheduler applies
them, persists the state, and runs the asyncio loop.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from product_update_server.domain.models import REFRESH_INTERVAL_SECONDS, CronState, ServerSettings
from product_update_server.services.index_cache import IndexCacheManager
from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

CRON_OPTION = "product_update_server_cron"


def plan_schedule(enabled: bool, current: CronState, now: datetime, force: bool = False) -> CronState:
    """
    Compute the desired schedule state.

    * enabled, nothing pending (or force): fire now, replacing any pending event
    * enabled and already pending: unchanged
    * disabled: nothing pending
    """
    if not enabled:
        return CronState(enabled=False, next_fire_time=None)
    if current.next_fire_time is None or force:
        return CronState(enabled=True, next_fire_time=now)
    return CronState(enabled=True, next_fire_time=current.next_fire_time)


def next_after(
    state: CronState, now: datetime, interval_seconds: int = REFRESH_INTERVAL_SECONDS
) -> CronState:
    """
    Advance a fired state by whole intervals so the next fire time is in the future.
    """
    if not state.enabled or state.next_fire_time is None:
        return state
    interval = timedelta(seconds=interval_seconds)
    next_fire = state.next_fire_time
    while next_fire <= now:
        next_fire = next_fire + interval
    return CronState(enabled=True, next_fire_time=next_fire)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """
    Hourly index refresh, toggled by the `enable_cron` setting.
    """

    def __init__(
        self,
        cache: IndexCacheManager,
        store: CacheStore,
        interval_seconds: int = REFRESH_INTERVAL_SECONDS,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self.store = store
        self.interval_seconds = interval_seconds
        self._now = now

    def get_state(self) -> CronState:
        raw = self.store.get_option(CRON_OPTION)
        if not isinstance(raw, dict):
            return CronState()
        try:
            return CronState(**raw)
        except ValidationError as e:
            logger.warning(f"Stored refresh schedule is invalid, resetting: {e}")
            return CronState()

    def _save_state(self, state: CronState) -> None:
        self.store.update_option(CRON_OPTION, state.model_dump(mode="json"))

    def sync(self, settings: ServerSettings, force: bool = False) -> CronState:
        """
        Bring the stored schedule in line with settings.
        """
        current = self.get_state()
        desired = plan_schedule(settings.enable_cron, current, self._now(), force=force)
        if desired != current:
            self._save_state(desired)
            if desired.enabled:
                logger.info(f"Index refresh scheduled, next run at {desired.next_fire_time}")
            else:
                logger.info("Index refresh unscheduled")
        return desired

    def unschedule(self) -> None:
        self._save_state(CronState())

    def due(self, now: Optional[datetime] = None) -> bool:
        state = self.get_state()
        now = now or self._now()
        return state.enabled and state.next_fire_time is not None and state.next_fire_time <= now

    def run_pending(self, now: Optional[datetime] = None) -> bool:
        """
        Refresh the index if a run is due. Returns True if a refresh ran.
        """
        now = now or self._now()
        if not self.due(now):
            return False

        # Advance first so a failing refresh does not retry on every poll.
        self._save_state(next_after(self.get_state(), now, self.interval_seconds))
        try:
            self.cache.refresh()
        except Exception:
            logger.error("Scheduled index refresh failed", exc_info=True)
            return False
        return True

    async def run_forever(self, poll_seconds: float = 60.0) -> None:
        """
        Poll for due runs until cancelled.

        A refresh already running in a worker thread is allowed to finish
        before the cancellation propagates.
        """
        while True:
            run = asyncio.ensure_future(asyncio.to_thread(self.run_pending))
            try:
                await asyncio.shield(run)
            except asyncio.CancelledError:
                with contextlib.suppress(Exception):
                    await run
                raise
            except Exception as e:
                logger.error(f"Error in index refresh loop: {e}")
            await asyncio.sleep(poll_seconds)
