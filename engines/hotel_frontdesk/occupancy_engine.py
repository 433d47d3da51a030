"""
Front Desk Engine: Occupancy Engine
=====================================
Derives the status of every active room from one snapshot.

Per room, first match wins:
    1. a live stay segment covers today            -> occupied
       a stay interrupted today or earlier         -> available, interrupted
    2. an approved reservation window contains now -> reserved
       a live stay segment starting after today    -> reserved
    3. latest housekeeping report:
         dirty -> cleaning, maintenance -> maintenance,
         inspected | cleaned -> available, anything else -> pending
    4. available

Also per room:
    upcoming_reservation -- earliest approved reservation starting after now
    pending_resumption   -- an open interrupted-stay credit names the room

Statuses are rebuilt from scratch on every pass. Nothing is carried over.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.event_store.contracts import RecordStatus, RoomMaster
from core.time.temporal import DEFAULT_CHECK_IN_TIME, DEFAULT_CHECK_OUT_TIME, parse_instant
from engines.hotel_frontdesk.conflicts import current_reservations, reservation_window
from engines.hotel_frontdesk.credits import open_credits
from engines.hotel_frontdesk.lineage import EffectiveStaySegment, LineageIndex
from engines.hotel_frontdesk.records import ClassifiedRecord, HousekeepingReport, Reservation

AVAILABLE = "available"
OCCUPIED = "occupied"
RESERVED = "reserved"
CLEANING = "cleaning"
MAINTENANCE = "maintenance"
PENDING = "pending"

ROOM_STATUSES = (AVAILABLE, OCCUPIED, RESERVED, CLEANING, MAINTENANCE, PENDING)

HK_NOT_REPORTED = "not_reported"
HK_CLEAN = "clean"
HK_DIRTY = "dirty"

_REPORT_TO_ROOM_STATUS = {
    "dirty": CLEANING,
    "maintenance": MAINTENANCE,
    "inspected": AVAILABLE,
    "cleaned": AVAILABLE,
}

_REPORT_TO_HOUSEKEEPING = {
    "cleaned": HK_CLEAN,
    "inspected": HK_CLEAN,
    "dirty": HK_DIRTY,
    "maintenance": HK_DIRTY,
}

_COUNTED = frozenset({RecordStatus.APPROVED, RecordStatus.PENDING})
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════
# VALUE OBJECTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UpcomingReservation:
    reservation_id: str
    reservation_code: str
    guest_name: str
    starts_at: datetime
    ends_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "reservation_code": self.reservation_code,
            "guest_name": self.guest_name,
            "starts_at": self.starts_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
        }


@dataclass(frozen=True)
class RoomStatus:
    room_id: str
    room_number: str
    status: str
    room_type: str = ""
    price_per_night: int = 0
    current_guest: Optional[str] = None
    booking_id: Optional[str] = None
    check_out_date: Optional[date] = None
    housekeeping_status: str = HK_NOT_REPORTED
    interrupted: bool = False
    pending_resumption: bool = False
    upcoming_reservation: Optional[UpcomingReservation] = None

    def __post_init__(self):
        if self.status not in ROOM_STATUSES:
            raise ValueError(f"status must be one of {ROOM_STATUSES}, got '{self.status}'.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "room_id": self.room_id,
            "room_number": self.room_number,
            "room_type": self.room_type,
            "price_per_night": self.price_per_night,
            "status": self.status,
            "current_guest": self.current_guest,
            "booking_id": self.booking_id,
            "check_out_date": self.check_out_date.isoformat() if self.check_out_date else None,
            "housekeeping_status": self.housekeeping_status,
            "interrupted": self.interrupted,
            "pending_resumption": self.pending_resumption,
            "upcoming_reservation": (
                self.upcoming_reservation.to_dict() if self.upcoming_reservation else None
            ),
        }


# ══════════════════════════════════════════════════════════════
# HOUSEKEEPING
# ══════════════════════════════════════════════════════════════

def latest_housekeeping(records: Iterable[ClassifiedRecord]) -> Dict[str, HousekeepingReport]:
    """Most recent live report per room (report date, then creation, then id)."""
    def rank(report: HousekeepingReport):
        reported = parse_instant(report.report_date) if report.report_date else _EPOCH
        return (reported, report.created_at or _EPOCH, report.id)

    latest: Dict[str, HousekeepingReport] = {}
    for record in records:
        if not isinstance(record, HousekeepingReport) or record.status not in _COUNTED:
            continue
        current = latest.get(record.room_id)
        if current is None or rank(record) > rank(current):
            latest[record.room_id] = record
    return latest


def housekeeping_state(report: Optional[HousekeepingReport]) -> str:
    if report is None:
        return HK_NOT_REPORTED
    return _REPORT_TO_HOUSEKEEPING.get(report.housekeeping_status, HK_NOT_REPORTED)


# ══════════════════════════════════════════════════════════════
# DERIVATION
# ══════════════════════════════════════════════════════════════

def _segments_by_room(index: LineageIndex) -> Dict[str, List[EffectiveStaySegment]]:
    by_room: Dict[str, List[EffectiveStaySegment]] = {}
    for lineage in index.lineages:
        if lineage.is_past:
            continue
        for segment in lineage.resolved_segments():
            by_room.setdefault(segment.room_id, []).append(segment)
    return by_room


def derive_room_statuses(
    rooms: Sequence[RoomMaster],
    records: Sequence[ClassifiedRecord],
    index: LineageIndex,
    *,
    now: datetime,
    tz: Optional[tzinfo] = None,
    check_in_time: time = DEFAULT_CHECK_IN_TIME,
    check_out_time: time = DEFAULT_CHECK_OUT_TIME,
) -> List[RoomStatus]:
    """Status of every active room, in room-number order."""
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware.")
    tz = tz or timezone.utc
    today = now.astimezone(tz).date()

    segments = _segments_by_room(index)
    reports = latest_housekeeping(records)
    reservations = current_reservations(records)
    credits = open_credits(records)

    statuses = []
    for room in sorted((r for r in rooms if r.active), key=lambda r: (r.room_number, r.room_id)):
        statuses.append(_derive_one(
            room,
            segments.get(room.room_id, []),
            [r for r in reservations if r.room_id == room.room_id],
            reports.get(room.room_id),
            any(
                c.room_id == room.room_id
                or (not c.room_id and c.room_number and c.room_number == room.room_number)
                for c in credits
            ),
            now=now,
            today=today,
            tz=tz,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        ))
    return statuses


def _derive_one(
    room: RoomMaster,
    segments: List[EffectiveStaySegment],
    reservations: List[Reservation],
    report: Optional[HousekeepingReport],
    pending_resumption: bool,
    *,
    now: datetime,
    today: date,
    tz: tzinfo,
    check_in_time: time,
    check_out_time: time,
) -> RoomStatus:
    base = {
        "room_id": room.room_id,
        "room_number": room.room_number,
        "room_type": room.room_type,
        "price_per_night": room.price_per_night,
        "housekeeping_status": housekeeping_state(report),
        "pending_resumption": pending_resumption,
    }

    windows = []
    for reservation in reservations:
        window = reservation_window(
            reservation, tz=tz, check_in_time=check_in_time, check_out_time=check_out_time,
        )
        if window is not None:
            windows.append((window, reservation))
    windows.sort(key=lambda pair: (pair[0].start, pair[1].id))
    upcoming = next(
        (
            UpcomingReservation(
                reservation_id=res.id,
                reservation_code=res.reservation_code,
                guest_name=res.guest_name,
                starts_at=window.start,
                ends_at=window.end,
            )
            for window, res in windows if window.start > now
        ),
        None,
    )
    base["upcoming_reservation"] = upcoming

    # 1. live stay
    covering = [s for s in segments if s.covers(today)]
    if covering:
        seg = max(covering, key=lambda s: (s.check_in_date, s.booking_id))
        return RoomStatus(
            status=OCCUPIED,
            current_guest=seg.booking.guest_name or None,
            booking_id=seg.booking_id,
            check_out_date=seg.check_out_date,
            **base,
        )
    paused = [s for s in segments if s.interrupted_on(today)]
    if paused:
        seg = max(paused, key=lambda s: (s.check_in_date, s.booking_id))
        return RoomStatus(
            status=AVAILABLE,
            interrupted=True,
            booking_id=seg.booking_id,
            **base,
        )

    # 2. reservation in force, or a stay booked for later
    for window, res in windows:
        if window.contains(now):
            return RoomStatus(
                status=RESERVED,
                current_guest=res.guest_name or None,
                check_out_date=window.end.astimezone(tz).date(),
                **base,
            )
    future = [s for s in segments if s.check_in_date > today]
    if future:
        seg = min(future, key=lambda s: (s.check_in_date, s.booking_id))
        return RoomStatus(
            status=RESERVED,
            current_guest=seg.booking.guest_name or None,
            booking_id=seg.booking_id,
            check_out_date=seg.check_out_date,
            **base,
        )

    # 3. housekeeping
    if report is not None:
        return RoomStatus(
            status=_REPORT_TO_ROOM_STATUS.get(report.housekeeping_status, PENDING),
            **base,
        )

    # 4.
    return RoomStatus(status=AVAILABLE, **base)
