"""
Front Desk Engine: Typed Records
==================================
Closed set of record variants produced by the classifier.

Each variant wraps the originating OperationalEvent and exposes only
the fields the derivations read, already coerced:
- amounts are integer minor units (0 when absent)
- strings are "" when absent
- stay values are date (date-only) or aware datetime

Nothing downstream of the classifier touches raw payload dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from core.event_store.contracts import OperationalEvent, RecordStatus

StayValue = Union[date, datetime]


# ══════════════════════════════════════════════════════════════
# BASE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ClassifiedRecord:
    event: OperationalEvent

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def status(self) -> RecordStatus:
        return self.event.status

    @property
    def is_approved(self) -> bool:
        return self.event.is_approved

    @property
    def created_at(self) -> Optional[datetime]:
        return self.event.created_at

    @property
    def lineage_key(self) -> str:
        return self.event.lineage_key

    @property
    def version_no(self) -> int:
        return self.event.version_no


@dataclass(frozen=True)
class QuarantinedRecord:
    """A record the classifier refused. Collected, logged, never derived from."""

    record_id: str
    record_type: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "record_type": self.record_type,
            "reason": self.reason,
        }


# ══════════════════════════════════════════════════════════════
# STAY RECORDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Booking(ClassifiedRecord):
    """
    One booking segment.

    parent_id is set on segments created by a transfer or a resumption
    and points at the segment (or credit) they continue from.
    """

    room_id: str
    check_in: StayValue
    check_out: StayValue
    guest_name: str = ""
    parent_id: Optional[str] = None
    room_rate: int = 0
    nights: int = 0
    total_room_cost: int = 0
    paid_amount: int = 0
    payment_method: str = ""
    payment_date: Optional[StayValue] = None
    resumed_from_interruption: bool = False
    source_credit_id: Optional[str] = None

    @property
    def base_charge(self) -> int:
        """Room charge for the segment: stated total, else rate x nights."""
        if self.total_room_cost > 0:
            return self.total_room_cost
        return max(0, self.room_rate * self.nights)


@dataclass(frozen=True)
class Extension(ClassifiedRecord):
    booking_id: str
    new_check_out: StayValue
    previous_check_out: Optional[StayValue] = None
    nights_added: int = 0
    additional_cost: int = 0
    reason: str = ""


@dataclass(frozen=True)
class Transfer(ClassifiedRecord):
    booking_id: str
    transfer_date: StayValue
    previous_room_id: str = ""
    new_room_id: str = ""
    reason: str = ""
    refund_amount: int = 0
    new_charge_amount: int = 0


@dataclass(frozen=True)
class Interruption(ClassifiedRecord):
    booking_id: str
    interruption_date: StayValue
    room_id: str = ""
    reason: str = ""


@dataclass(frozen=True)
class InterruptedStayCredit(ClassifiedRecord):
    """
    Money a guest has left after an interrupted stay.

    closed is True when the credit's own payload or record status
    already marks it resumed, cancelled, converted or expired.
    """

    booking_id: str = ""
    room_id: str = ""
    room_number: str = ""
    guest_name: str = ""
    interrupted_at: Optional[StayValue] = None
    credit_remaining: int = 0
    can_resume: bool = False
    total_paid: int = 0
    closed: bool = False


@dataclass(frozen=True)
class Checkout(ClassifiedRecord):
    booking_id: str
    checkout_date: Optional[StayValue] = None
    room_number: str = ""
    total_due: int = 0
    final_payment: int = 0
    payment_method: str = ""
    notes: str = ""


@dataclass(frozen=True)
class Cancellation(ClassifiedRecord):
    booking_id: str
    reason: str = ""


@dataclass(frozen=True)
class TransferCompletion(ClassifiedRecord):
    transfer_id: str
    booking_id: str = ""
    room_id: str = ""


# ══════════════════════════════════════════════════════════════
# RESERVATIONS & HOUSEKEEPING
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Reservation(ClassifiedRecord):
    room_id: str
    check_in_date: StayValue
    check_out_date: StayValue
    reservation_code: str = ""
    room_number: str = ""
    guest_name: str = ""
    start_time: str = ""
    end_time: str = ""
    deposit_amount: int = 0
    reservation_status: str = ""


@dataclass(frozen=True)
class HousekeepingReport(ClassifiedRecord):
    room_id: str
    housekeeping_status: str
    report_date: Optional[StayValue] = None
    room_condition: str = ""
    maintenance_required: bool = False
    housekeeper_name: str = ""


# ══════════════════════════════════════════════════════════════
# FOLIO MOVEMENTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FolioMovement(ClassifiedRecord):
    """Shared shape of payment, penalty, discount and refund."""

    booking_id: str = ""
    amount: int = 0
    reason: str = ""
    on_date: Optional[StayValue] = None


@dataclass(frozen=True)
class Payment(FolioMovement):
    payment_method: str = ""


@dataclass(frozen=True)
class Penalty(FolioMovement):
    pass


@dataclass(frozen=True)
class Discount(FolioMovement):
    pass


@dataclass(frozen=True)
class Refund(FolioMovement):
    source_credit_id: Optional[str] = None


# ══════════════════════════════════════════════════════════════
# INVENTORY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConfigChange(ClassifiedRecord):
    """One version of a category, collection or item."""

    config_type: str
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StockTransaction(ClassifiedRecord):
    item_key: str
    transaction_type: str
    quantity_in: int = 0
    quantity_out: int = 0
    department: str = ""
    unit_price: int = 0
    event_date: Optional[StayValue] = None

    @property
    def net_quantity(self) -> int:
        return self.quantity_in - self.quantity_out
