"""Periodic report-store maintenance: fail stale jobs, evict old records."""

import asyncio
import contextlib
import logging

from backend.app.reports.store import ReportStore

logger = logging.getLogger(__name__)


def run_maintenance(
    store: ReportStore, *, ttl_seconds: int, stale_after_seconds: int
) -> tuple[int, int]:
    """One maintenance tick.

    Returns:
        (jobs marked stale, records evicted)
    """
    stale = store.reconcile_stale(stale_after_seconds)
    evicted = store.cleanup(ttl_seconds)
    if stale or evicted:
        logger.info(f"[report-maintenance] marked {stale} stale job(s), evicted {evicted} record(s)")
    return stale, evicted


class ReportMaintenance:
    """Runs run_maintenance on a fixed interval in a background task."""

    def __init__(
        self,
        store: ReportStore,
        *,
        interval_seconds: float,
        ttl_seconds: int,
        stale_after_seconds: int,
    ) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self.ttl_seconds = ttl_seconds
        self.stale_after_seconds = stale_after_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the maintenance loop (no-op if already running)."""
        if self.running:
            logger.warning("[report-maintenance] already running")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"[report-maintenance] started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("[report-maintenance] stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                run_maintenance(
                    self.store,
                    ttl_seconds=self.ttl_seconds,
                    stale_after_seconds=self.stale_after_seconds,
                )
            except Exception as e:
                logger.error(f"[report-maintenance] tick failed: {e}")
