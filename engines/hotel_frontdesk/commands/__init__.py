"""
Front Desk Engine: Request Commands
=====================================
Frozen request objects for every mutating front-desk action.
Construction validates the request shape; a bad request raises
ValidationError before the service fetches or writes anything.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from core.time.temporal import parse_clock_time
from engines.hotel_frontdesk.errors import ValidationError
from engines.hotel_frontdesk.events import (
    DISCOUNT_APPLIED,
    PAYMENT_RECORD,
    PENALTY_FEE,
    REFUND_RECORD,
    VALID_HOUSEKEEPING_STATUSES,
    VALID_PAYMENT_METHODS,
)

FOLIO_RECORD_TYPES = frozenset({
    PAYMENT_RECORD, PENALTY_FEE, DISCOUNT_APPLIED, REFUND_RECORD,
})


def _require(value, field: str) -> None:
    if not value or not str(value).strip():
        raise ValidationError(field, "must be non-empty.")


def _positive_int(value, field: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(field, "must be a positive integer.")


def _payment_method(value: str) -> None:
    if value not in VALID_PAYMENT_METHODS:
        raise ValidationError(
            "payment_method", f"must be one of {sorted(VALID_PAYMENT_METHODS)}."
        )


@dataclass(frozen=True)
class ExtendStayRequest:
    booking_id: str
    nights:     int
    reason:     str = ""

    def __post_init__(self):
        _require(self.booking_id, "booking_id")
        _positive_int(self.nights, "nights")


@dataclass(frozen=True)
class TransferRoomRequest:
    booking_id:  str
    new_room_id: str
    reason:      str

    def __post_init__(self):
        _require(self.booking_id, "booking_id")
        _require(self.new_room_id, "new_room_id")
        _require(self.reason, "reason")


@dataclass(frozen=True)
class InterruptStayRequest:
    booking_id:       str
    reason:           str
    credit_remaining: Optional[int] = None
    can_resume:       bool = True

    def __post_init__(self):
        _require(self.booking_id, "booking_id")
        _require(self.reason, "reason")
        if self.credit_remaining is None:
            return
        if not isinstance(self.credit_remaining, int) or self.credit_remaining < 0:
            raise ValidationError("credit_remaining", "must be a non-negative integer.")


@dataclass(frozen=True)
class ResumeStayRequest:
    credit_id:      str
    room_id:        str
    nights:         Optional[int] = None
    payment_method: str = "transfer"

    def __post_init__(self):
        _require(self.credit_id, "credit_id")
        _require(self.room_id, "room_id")
        if self.nights is not None:
            _positive_int(self.nights, "nights")
        _payment_method(self.payment_method)


@dataclass(frozen=True)
class RefundCreditRequest:
    credit_id: str
    reason:    str = "Refund of interrupted stay credit"

    def __post_init__(self):
        _require(self.credit_id, "credit_id")


@dataclass(frozen=True)
class FolioRequest:
    """Payment, penalty, discount or refund against a booking."""

    record_type:    str
    booking_id:     str
    amount:         int
    reason:         str = ""
    payment_method: Optional[str] = None

    def __post_init__(self):
        if self.record_type not in FOLIO_RECORD_TYPES:
            raise ValidationError(
                "record_type", f"must be one of {sorted(FOLIO_RECORD_TYPES)}."
            )
        _require(self.booking_id, "booking_id")
        _positive_int(self.amount, "amount")
        if self.record_type == PAYMENT_RECORD:
            _payment_method(self.payment_method or "")
        if self.record_type in (PENALTY_FEE, DISCOUNT_APPLIED):
            _require(self.reason, "reason")


@dataclass(frozen=True)
class CheckOutRequest:
    booking_id:     str
    payment_method: str = "cash"
    notes:          str = ""

    def __post_init__(self):
        _require(self.booking_id, "booking_id")
        _payment_method(self.payment_method)


@dataclass(frozen=True)
class CancelStayRequest:
    booking_id: str
    reason:     str

    def __post_init__(self):
        _require(self.booking_id, "booking_id")
        _require(self.reason, "reason")


@dataclass(frozen=True)
class HousekeepingRequest:
    room_ids:             Tuple[str, ...]
    housekeeping_status:  str
    room_condition:       str = ""
    maintenance_required: bool = False
    housekeeper_name:     str = ""
    notes:                str = ""

    def __post_init__(self):
        if not self.room_ids:
            raise ValidationError("room_ids", "select at least one room.")
        for room_id in self.room_ids:
            _require(room_id, "room_ids")
        if self.housekeeping_status not in VALID_HOUSEKEEPING_STATUSES:
            raise ValidationError(
                "housekeeping_status",
                f"must be one of {sorted(VALID_HOUSEKEEPING_STATUSES)}.",
            )


@dataclass(frozen=True)
class CreateReservationRequest:
    guest_name:     str
    room_id:        str
    check_in_date:  date
    check_out_date: date
    start_time:     str = "14:00"
    end_time:       str = "11:00"
    deposit_amount: int = 0
    guest_phone:    str = ""
    notes:          str = ""

    def __post_init__(self):
        _require(self.guest_name, "guest_name")
        _require(self.room_id, "room_id")
        if not isinstance(self.check_in_date, date) or not isinstance(self.check_out_date, date):
            raise ValidationError("check_in_date", "stay dates must be dates.")
        if self.check_out_date <= self.check_in_date:
            raise ValidationError("check_out_date", "must be after check_in_date.")
        for field in ("start_time", "end_time"):
            value = getattr(self, field)
            if parse_clock_time(value, None) is None:
                raise ValidationError(field, f"'{value}' is not a HH:MM time.")
        if not isinstance(self.deposit_amount, int) or self.deposit_amount < 0:
            raise ValidationError("deposit_amount", "must be a non-negative integer.")
