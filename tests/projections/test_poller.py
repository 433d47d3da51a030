"""
Front Desk — Refresh Poller Tests
====================================
"""

import asyncio
import logging

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.config.frontdesk import FrontDeskSettings
from projections.frontdesk.poller import REFRESH_JOB_ID, RefreshPoller


class CountingReadModel:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    async def refresh(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("derivation blew up")
        return f"view-{self.calls}"


class TestConstruction:
    def test_interval_from_settings(self):
        poller = RefreshPoller(CountingReadModel(), settings=FrontDeskSettings(poll_interval_seconds=15))
        assert poller.interval_seconds == 15

    def test_explicit_interval_wins(self):
        poller = RefreshPoller(
            CountingReadModel(), settings=FrontDeskSettings(poll_interval_seconds=15), interval_seconds=5,
        )
        assert poller.interval_seconds == 5

    def test_non_positive_interval(self):
        with pytest.raises(ValueError, match="positive"):
            RefreshPoller(CountingReadModel(), interval_seconds=0)


class TestRuns:
    def test_refresh_now(self):
        model = CountingReadModel()
        poller = RefreshPoller(model, interval_seconds=60)
        assert asyncio.run(poller.refresh_now()) == "view-1"
        assert model.calls == 1

    def test_failed_tick_is_logged_not_raised(self, caplog):
        model = CountingReadModel(fail=True)
        poller = RefreshPoller(model, interval_seconds=60)
        with caplog.at_level(logging.ERROR, logger="frontdesk.poller"):
            asyncio.run(poller._tick())
            asyncio.run(poller._tick())
        assert model.calls == 2
        assert "Refresh run failed" in caplog.text


class TestScheduling:
    def test_start_and_stop_own_scheduler(self):
        async def scenario():
            poller = RefreshPoller(CountingReadModel(), interval_seconds=60)
            poller.start()
            job = poller.scheduler.get_job(REFRESH_JOB_ID)
            started = poller.scheduler.running
            poller.stop()
            return job, started, poller.scheduler.running

        job, started, running_after = asyncio.run(scenario())
        assert job is not None
        assert job.trigger.interval.total_seconds() == 60
        assert started is True
        assert running_after is False

    def test_shared_scheduler_keeps_running(self):
        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            poller = RefreshPoller(CountingReadModel(), interval_seconds=30, scheduler=scheduler)
            poller.start()
            poller.start()
            jobs = [j.id for j in scheduler.get_jobs()]
            poller.stop()
            remaining = scheduler.get_jobs()
            running = scheduler.running
            scheduler.shutdown(wait=False)
            return jobs, remaining, running

        jobs, remaining, running = asyncio.run(scenario())
        assert jobs == [REFRESH_JOB_ID]
        assert remaining == []
        assert running is True
