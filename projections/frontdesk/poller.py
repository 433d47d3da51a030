"""
Front Desk Projections: Refresh Poller
========================================
Re-derives the read model on a fixed interval and on demand.

There is no push channel: displayed state is stale by at most one
interval. A failing run is logged and the next run still happens.
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.config.frontdesk import FrontDeskSettings
from projections.frontdesk import FrontDeskReadModel, FrontDeskView

log = logging.getLogger("frontdesk.poller")

REFRESH_JOB_ID = "frontdesk_refresh"


class RefreshPoller:
    def __init__(
        self,
        read_model: FrontDeskReadModel,
        *,
        settings: Optional[FrontDeskSettings] = None,
        interval_seconds: Optional[int] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        if interval_seconds is None:
            interval_seconds = (settings or FrontDeskSettings()).poll_interval_seconds
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.read_model = read_model
        self.interval_seconds = interval_seconds
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or AsyncIOScheduler()

    async def refresh_now(self) -> Optional[FrontDeskView]:
        return await self.read_model.refresh()

    async def _tick(self) -> None:
        try:
            await self.read_model.refresh()
        except Exception:
            log.exception("[POLLER] Refresh run failed; next run is still scheduled")

    def start(self) -> None:
        """Register the interval job. Must be called with a running event loop."""
        self.scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        log.info(f"[POLLER] Refresh scheduled every {self.interval_seconds}s")

    def stop(self) -> None:
        if self.scheduler.get_job(REFRESH_JOB_ID) is not None:
            self.scheduler.remove_job(REFRESH_JOB_ID)
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        log.info("[POLLER] Refresh stopped")
