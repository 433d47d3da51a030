"""
Front Desk Projections: Read Model
====================================
Display cache of the last good derived view.

Each refresh fetches a fresh snapshot and derives everything from it:
room statuses, active/past lineages, ledgers, revenue and open credits.
The cached view is replaced whole, never patched. When a refresh fails
on a collaborator, the previous view stays and the error is recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from core.config.frontdesk import FrontDeskSettings
from core.event_store.contracts import EventLog, RoomDirectory, StockLevelSource
from core.time.clock import Clock
from engines.hotel_frontdesk.credits import open_credits
from engines.hotel_frontdesk.errors import TransientFetchError
from engines.hotel_frontdesk.ledger_engine import Ledger, compute_ledger
from engines.hotel_frontdesk.lineage import LineageIndex, LineageViews, group_lineages, split_lineages
from engines.hotel_frontdesk.occupancy_engine import OCCUPIED, RoomStatus, derive_room_statuses
from engines.hotel_frontdesk.records import InterruptedStayCredit, QuarantinedRecord
from engines.hotel_frontdesk.snapshot import FrontDeskSnapshot, fetch_snapshot
from projections.frontdesk.revenue import RevenueSummary, summarize_revenue
from projections.inventory import InventoryReadModel

logger = logging.getLogger("frontdesk.read_model")


@dataclass(frozen=True)
class FrontDeskView:
    rooms: Tuple[RoomStatus, ...]
    lineages: LineageViews
    ledgers: Mapping[str, Ledger]
    revenue: RevenueSummary
    open_credits: Tuple[InterruptedStayCredit, ...]
    quarantined: Tuple[QuarantinedRecord, ...]
    taken_at: datetime
    index: LineageIndex

    @property
    def occupancy_rate(self) -> float:
        if not self.rooms:
            return 0.0
        return sum(1 for r in self.rooms if r.status == OCCUPIED) / len(self.rooms)

    def room(self, room_id: str) -> Optional[RoomStatus]:
        return next((r for r in self.rooms if r.room_id == room_id), None)

    def ledger_for(self, reference: str) -> Optional[Ledger]:
        lineage = self.index.find(reference)
        return self.ledgers.get(lineage.root_id) if lineage else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rooms": [r.to_dict() for r in self.rooms],
            "active": [l.root_id for l in self.lineages.active],
            "past": [l.root_id for l in self.lineages.past],
            "ledgers": {key: ledger.summary.to_dict() for key, ledger in self.ledgers.items()},
            "revenue": self.revenue.to_dict(),
            "open_credits": [c.id for c in self.open_credits],
            "quarantined": [q.to_dict() for q in self.quarantined],
            "occupancy_rate": self.occupancy_rate,
            "taken_at": self.taken_at.isoformat(),
        }


def build_view(snapshot: FrontDeskSnapshot, settings: Optional[FrontDeskSettings] = None) -> FrontDeskView:
    """Pure derivation of everything the desk displays."""
    settings = settings or FrontDeskSettings()
    records = snapshot.records
    index = group_lineages(records)
    views = split_lineages(index, records)
    rooms = derive_room_statuses(
        snapshot.rooms,
        records,
        index,
        now=snapshot.taken_at,
        tz=settings.tz,
        check_in_time=settings.default_check_in_time,
        check_out_time=settings.default_check_out_time,
    )
    return FrontDeskView(
        rooms=tuple(rooms),
        lineages=views,
        ledgers={lineage.root_id: compute_ledger(lineage) for lineage in index.lineages},
        revenue=summarize_revenue(views.checkouts, views.past, tz=settings.tz),
        open_credits=tuple(open_credits(records)),
        quarantined=snapshot.quarantined,
        taken_at=snapshot.taken_at,
        index=index,
    )


class FrontDeskReadModel:
    """
    Holds the last good FrontDeskView.

    refresh() is the only writer. Readers see either the previous view
    or the new one, never a mix.
    """

    projection_name = "frontdesk_read_model"

    def __init__(
        self,
        *,
        event_log: EventLog,
        rooms: RoomDirectory,
        clock: Clock,
        settings: Optional[FrontDeskSettings] = None,
        stock_source: Optional[StockLevelSource] = None,
        inventory: Optional[InventoryReadModel] = None,
    ) -> None:
        self._event_log = event_log
        self._rooms = rooms
        self._clock = clock
        self._settings = settings or FrontDeskSettings()
        self._stock_source = stock_source
        self.inventory = inventory
        self._view: Optional[FrontDeskView] = None
        self.last_error: Optional[TransientFetchError] = None
        self.refresh_count = 0

    @property
    def view(self) -> Optional[FrontDeskView]:
        return self._view

    async def refresh(self) -> Optional[FrontDeskView]:
        try:
            snapshot = await fetch_snapshot(
                self._event_log,
                self._rooms,
                clock=self._clock,
                settings=self._settings,
                stock_source=self._stock_source,
            )
        except TransientFetchError as exc:
            logger.warning(f"Refresh aborted, keeping previous view: {exc}")
            self.last_error = exc
            return self._view
        view = build_view(snapshot, self._settings)
        if self.inventory is not None:
            self.inventory.apply_snapshot(snapshot)
        self._view = view
        self.last_error = None
        self.refresh_count += 1
        logger.info(
            f"Derived {len(view.rooms)} rooms, {len(view.index.lineages)} lineages, "
            f"{len(view.quarantined)} quarantined"
        )
        return view

    def truncate(self) -> None:
        self._view = None
        self.last_error = None
