"""
Front Desk Engine: Policies
=============================
Pre-write checks. Each returns None when the action may proceed, or a
message naming what blocks it. The service turns messages into
ValidationError before anything is written.
"""
from __future__ import annotations

from datetime import date
from typing import Mapping, Optional

from core.event_store.contracts import RoomMaster
from engines.hotel_frontdesk.lineage import BookingLineage, EffectiveStaySegment
from engines.hotel_frontdesk.records import HousekeepingReport, InterruptedStayCredit

CLEAN_HOUSEKEEPING_STATUSES = frozenset({"cleaned", "inspected"})


def lineage_must_exist_policy(booking_id: str, lineage: Optional[BookingLineage]) -> Optional[str]:
    if lineage is None:
        return f"booking '{booking_id}' not found."
    return None


def lineage_must_be_active_policy(lineage: BookingLineage) -> Optional[str]:
    if lineage.checkouts:
        return f"booking '{lineage.root_id}' is already checked out."
    if lineage.cancellations:
        return f"booking '{lineage.root_id}' was cancelled."
    return None


def stay_must_not_be_interrupted_policy(segment: EffectiveStaySegment) -> Optional[str]:
    if segment.interrupted:
        return (f"booking '{segment.booking_id}' was interrupted on "
                f"{segment.interruption_date.isoformat()}.")
    return None


def remaining_nights_must_be_positive_policy(
    segment: EffectiveStaySegment, today: date
) -> Optional[str]:
    if (segment.check_out_date - today).days <= 0:
        return f"booking '{segment.booking_id}' has no nights left to move."
    return None


def room_must_exist_policy(room_id: str, rooms: Mapping[str, RoomMaster]) -> Optional[str]:
    room = rooms.get(room_id)
    if room is None:
        return f"room '{room_id}' not found."
    if not room.active:
        return f"room '{room_id}' is not active."
    return None


def room_must_differ_policy(current_room_id: str, new_room_id: str) -> Optional[str]:
    if current_room_id == new_room_id:
        return f"guest is already in room '{new_room_id}'."
    return None


def room_must_be_clean_policy(
    room_id: str, report: Optional[HousekeepingReport]
) -> Optional[str]:
    """Latest housekeeping report must say cleaned or inspected."""
    if report is None:
        return f"room '{room_id}' has no housekeeping report."
    if report.housekeeping_status not in CLEAN_HOUSEKEEPING_STATUSES:
        return f"room '{room_id}' is {report.housekeeping_status}, not clean."
    return None


def credit_must_be_open_policy(
    credit_id: str, credit: Optional[InterruptedStayCredit], consumed: set
) -> Optional[str]:
    if credit is None:
        return f"credit '{credit_id}' not found."
    if credit.closed or credit.id in consumed or credit.lineage_key in consumed:
        return f"credit '{credit_id}' was already resumed or refunded."
    if credit.credit_remaining <= 0:
        return f"credit '{credit_id}' has nothing left."
    return None


def credit_must_be_resumable_policy(credit: InterruptedStayCredit) -> Optional[str]:
    if not credit.can_resume:
        return f"credit '{credit.id}' cannot be resumed."
    return None


def discount_must_not_exceed_balance_policy(amount: int, balance: int) -> Optional[str]:
    if amount > balance:
        return f"discount {amount} is larger than the outstanding balance {balance}."
    return None
