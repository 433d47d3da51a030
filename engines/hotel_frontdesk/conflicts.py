"""
Front Desk Engine: Conflict Checker
=====================================
Tests a candidate room window against approved bookings and
reservations for that room.

RULES:
- Windows are half-open [start, end); s1 < e2 and e1 > s2 is a clash
- Back-to-back windows (one ends exactly when the next starts) are fine
- A clash names the blocking record; never a bare boolean
- Booking windows are the effective windows after extensions,
  transfers and interruptions; checked-out or cancelled stays block nothing
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time, tzinfo
from typing import AbstractSet, Iterable, List, Optional

from core.event_store.contracts import RecordStatus
from core.time.temporal import (
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
    StayWindow,
    parse_clock_time,
)
from engines.hotel_frontdesk.errors import ConflictError
from engines.hotel_frontdesk.lineage import LineageIndex
from engines.hotel_frontdesk.records import ClassifiedRecord, Reservation
from engines.inventory.config_resolver import latest_per_lineage

# Reservation payload statuses that no longer hold the room.
RELEASED_RESERVATION_STATUSES = frozenset({
    "cancelled", "checked_in", "converted", "expired", "no_show",
})


@dataclass(frozen=True)
class Blocker:
    """An approved booking segment or reservation occupying a window."""

    record_id: str
    kind: str
    room_id: str
    window: StayWindow
    guest_name: str = ""

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "kind": self.kind,
            "room_id": self.room_id,
            "window": self.window.to_dict(),
            "guest_name": self.guest_name,
        }


@dataclass(frozen=True)
class Conflict:
    """The candidate window and the blocker it runs into."""

    candidate: StayWindow
    blocker: Blocker

    @property
    def record_id(self) -> str:
        return self.blocker.record_id

    @property
    def kind(self) -> str:
        return self.blocker.kind

    @property
    def room_id(self) -> str:
        return self.blocker.room_id

    @property
    def window(self) -> StayWindow:
        return self.blocker.window

    def to_dict(self) -> dict:
        data = self.blocker.to_dict()
        data["candidate"] = self.candidate.to_dict()
        return data


def reservation_window(
    reservation: Reservation,
    *,
    tz: Optional[tzinfo] = None,
    check_in_time: time = DEFAULT_CHECK_IN_TIME,
    check_out_time: time = DEFAULT_CHECK_OUT_TIME,
) -> Optional[StayWindow]:
    """Reservation dates pinned to its own start/end times (hotel defaults otherwise)."""
    try:
        return StayWindow.from_dates(
            reservation.check_in_date,
            reservation.check_out_date,
            check_in_time=parse_clock_time(reservation.start_time, check_in_time),
            check_out_time=parse_clock_time(reservation.end_time, check_out_time),
            tz=tz,
        )
    except ValueError:
        return None


def reservation_holds_room(reservation: Reservation) -> bool:
    return (
        reservation.status is RecordStatus.APPROVED
        and reservation.reservation_status not in RELEASED_RESERVATION_STATUSES
    )


def current_reservations(records: Iterable[ClassifiedRecord]) -> List[Reservation]:
    """Latest version of every reservation that still holds its room."""
    versions = [r for r in records if isinstance(r, Reservation)]
    return sorted(
        (r for r in latest_per_lineage(versions).values() if reservation_holds_room(r)),
        key=lambda r: r.id,
    )


def collect_blockers(
    room_id: str,
    records: Iterable[ClassifiedRecord],
    index: LineageIndex,
    *,
    tz: Optional[tzinfo] = None,
    check_in_time: time = DEFAULT_CHECK_IN_TIME,
    check_out_time: time = DEFAULT_CHECK_OUT_TIME,
    exclude_ids: AbstractSet[str] = frozenset(),
) -> List[Blocker]:
    """
    Approved windows on `room_id`, earliest first.

    exclude_ids drops the caller's own booking/lineage so an extension
    never conflicts with the stay it extends.
    """
    blockers: List[Blocker] = []
    for lineage in index.lineages:
        if lineage.is_past or lineage.reference_ids & exclude_ids:
            continue
        for segment in lineage.resolved_segments():
            booking = segment.booking
            if booking.room_id != room_id or booking.status is not RecordStatus.APPROVED:
                continue
            window = segment.window(check_in_time=check_in_time, check_out_time=check_out_time, tz=tz)
            if window is None:
                continue
            blockers.append(Blocker(booking.id, "booking", room_id, window, booking.guest_name))

    for record in current_reservations(records):
        if record.room_id != room_id:
            continue
        if record.id in exclude_ids or record.lineage_key in exclude_ids:
            continue
        window = reservation_window(
            record, tz=tz, check_in_time=check_in_time, check_out_time=check_out_time,
        )
        if window is not None:
            blockers.append(Blocker(record.id, "reservation", room_id, window, record.guest_name))

    blockers.sort(key=lambda b: (b.window.start, b.record_id))
    return blockers


def find_conflict(candidate: StayWindow, blockers: Iterable[Blocker]) -> Optional[Conflict]:
    """First blocker (earliest start) overlapping the candidate, or None."""
    for blocker in sorted(blockers, key=lambda b: (b.window.start, b.record_id)):
        if candidate.overlaps(blocker.window):
            return Conflict(candidate=candidate, blocker=blocker)
    return None


def ensure_no_conflict(candidate: StayWindow, blockers: Iterable[Blocker]) -> None:
    conflict = find_conflict(candidate, blockers)
    if conflict is not None:
        raise ConflictError(conflict)
