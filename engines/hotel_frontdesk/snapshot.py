"""
Front Desk Engine: Snapshot Fetch
===================================
Reads one consistent-enough picture of the world from the collaborators.

RULES:
- Rooms, front-desk records and inventory records are fetched
  concurrently; any of them failing aborts the pass (TransientFetchError)
- The stock-level lookup is secondary: on failure it degrades to levels
  computed from the snapshot's own stock transactions
- Everything downstream is a pure function of the returned snapshot
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple

from core.config.frontdesk import FrontDeskSettings
from core.event_store.contracts import (
    EventLog,
    RecordStatus,
    RoomDirectory,
    RoomMaster,
    StockLevelSource,
)
from core.event_store.persistence.errors import StoreUnavailableError
from core.time.clock import Clock
from engines.hotel_frontdesk.classifier import ClassificationResult, classify_records
from engines.hotel_frontdesk.errors import TransientFetchError
from engines.hotel_frontdesk.records import ClassifiedRecord, QuarantinedRecord
from engines.inventory.stock_engine import compute_stock_levels

logger = logging.getLogger("frontdesk.snapshot")

FETCHED_STATUSES = (RecordStatus.APPROVED, RecordStatus.PENDING, RecordStatus.CONVERTED)


@dataclass(frozen=True)
class FrontDeskSnapshot:
    rooms: Tuple[RoomMaster, ...]
    classification: ClassificationResult
    taken_at: datetime
    stock_levels: Mapping[str, int] = field(default_factory=dict)
    stock_levels_degraded: bool = False

    @property
    def records(self) -> Tuple[ClassifiedRecord, ...]:
        return self.classification.records

    @property
    def quarantined(self) -> Tuple[QuarantinedRecord, ...]:
        return self.classification.quarantined

    def room_map(self) -> Dict[str, RoomMaster]:
        return {room.room_id: room for room in self.rooms}


async def _fetch(source: str, coro):
    try:
        return await coro
    except (StoreUnavailableError, OSError) as exc:
        raise TransientFetchError(source, str(exc)) from exc


async def _stock_levels(
    stock_source: Optional[StockLevelSource],
    classification: ClassificationResult,
) -> Tuple[Dict[str, int], bool]:
    if stock_source is None:
        return compute_stock_levels(classification.records), False
    try:
        return dict(await stock_source.stock_levels()), False
    except Exception:
        logger.warning(
            "Stock level lookup failed; using levels computed from transactions",
            exc_info=True,
        )
        return compute_stock_levels(classification.records), True


async def fetch_snapshot(
    event_log: EventLog,
    rooms: RoomDirectory,
    *,
    clock: Clock,
    settings: Optional[FrontDeskSettings] = None,
    stock_source: Optional[StockLevelSource] = None,
) -> FrontDeskSnapshot:
    settings = settings or FrontDeskSettings()
    room_list, front_desk, inventory = await asyncio.gather(
        _fetch("rooms", rooms.list_rooms()),
        _fetch(
            "front desk records",
            event_log.query(settings.entity_kind, statuses=FETCHED_STATUSES),
        ),
        _fetch(
            "inventory records",
            event_log.query(settings.inventory_entity_kind, statuses=FETCHED_STATUSES),
        ),
    )
    classification = classify_records(list(front_desk) + list(inventory))
    levels, degraded = await _stock_levels(stock_source, classification)

    snapshot = FrontDeskSnapshot(
        rooms=tuple(room_list),
        classification=classification,
        taken_at=clock.now_utc(),
        stock_levels=levels,
        stock_levels_degraded=degraded,
    )
    logger.info(
        f"Snapshot taken: {len(snapshot.rooms)} rooms, "
        f"{len(snapshot.records)} records, {len(snapshot.quarantined)} quarantined"
    )
    return snapshot
