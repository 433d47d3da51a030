"""
Front Desk — Snapshot Fetch Tests
====================================
"""

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from core.event_store.contracts import RecordStatus
from core.event_store.persistence import (
    InMemoryEventLog,
    InMemoryRoomDirectory,
    StoreUnavailableError,
)
from core.time.clock import FixedClock
from engines.hotel_frontdesk.errors import TransientFetchError
from engines.hotel_frontdesk.snapshot import fetch_snapshot
from engines.inventory import events as inv

NOW = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)


class DownRoomDirectory:
    def __init__(self, error):
        self.error = error

    async def list_rooms(self):
        raise self.error


class DownStockSource:
    async def stock_levels(self):
        raise RuntimeError("stock service unreachable")


class FixedStockSource:
    def __init__(self, levels):
        self.levels = levels

    async def stock_levels(self):
        return self.levels


def _fetch(log, rooms, **kwargs):
    return asyncio.run(fetch_snapshot(log, rooms, clock=FixedClock(NOW), **kwargs))


class TestGather:
    def test_both_partitions_are_classified(self, make, rooms):
        log = InMemoryEventLog([
            make.booking(id="BK-1"),
            make.item("Bar", "Spirits", "Konyagi", id="IT-1"),
            make.stock("IT-1", inv.TX_OPENING_STOCK, 10, id="ST-1"),
        ])
        snapshot = _fetch(log, InMemoryRoomDirectory(rooms))
        assert len(snapshot.rooms) == 3
        assert {r.id for r in snapshot.records} == {"BK-1", "IT-1", "ST-1"}
        assert snapshot.stock_levels == {"IT-1": 10}
        assert snapshot.stock_levels_degraded is False
        assert snapshot.taken_at == NOW
        assert set(snapshot.room_map()) == {"R101", "R102", "R103"}

    def test_rejected_and_deleted_are_not_fetched(self, make, rooms):
        log = InMemoryEventLog([
            make.booking(id="BK-1", status=RecordStatus.REJECTED),
            make.booking(id="BK-2", deleted_at=NOW),
            make.booking(id="BK-3", status=RecordStatus.PENDING),
        ])
        snapshot = _fetch(log, InMemoryRoomDirectory(rooms))
        assert [r.id for r in snapshot.records] == ["BK-3"]

    def test_quarantine_is_exposed(self, make, rooms):
        log = InMemoryEventLog([make.event({"type": "mystery"}, id="BAD-1")])
        snapshot = _fetch(log, InMemoryRoomDirectory(rooms))
        assert [q.record_id for q in snapshot.quarantined] == ["BAD-1"]


class TestFailures:
    @pytest.mark.parametrize("error", [
        StoreUnavailableError("list_rooms", "connection refused"),
        OSError("network is unreachable"),
    ])
    def test_unreachable_rooms_abort_the_pass(self, error):
        with pytest.raises(TransientFetchError) as exc:
            _fetch(InMemoryEventLog(), DownRoomDirectory(error))
        assert exc.value.source == "rooms"
        assert exc.value.retryable

    def test_stock_lookup_degrades(self, make, rooms, caplog):
        log = InMemoryEventLog([
            make.item("Bar", "Spirits", "Konyagi", id="IT-1"),
            make.stock("IT-1", inv.TX_OPENING_STOCK, 10),
            make.stock("IT-1", inv.TX_SOLD, 4),
        ])
        with caplog.at_level(logging.WARNING, logger="frontdesk.snapshot"):
            snapshot = _fetch(log, InMemoryRoomDirectory(rooms), stock_source=DownStockSource())
        assert snapshot.stock_levels == {"IT-1": 6}
        assert snapshot.stock_levels_degraded is True
        assert "Stock level lookup failed" in caplog.text

    def test_stock_lookup_answer_is_used(self, rooms):
        snapshot = _fetch(
            InMemoryEventLog(), InMemoryRoomDirectory(rooms),
            stock_source=FixedStockSource({"IT-1": 42}),
        )
        assert snapshot.stock_levels == {"IT-1": 42}
        assert snapshot.stock_levels_degraded is False
