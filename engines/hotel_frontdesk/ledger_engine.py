"""
Front Desk Engine: Ledger Aggregator
======================================
Folds a lineage's financial records into ledger entries and a summary.

Debits (charges):
    room charge of the root segment (total_room_cost, else rate x nights)
    room charge of every later segment (transfer / resumption)
    extension additional cost
    penalty
Credits (reductions):
    initial payment on the root segment
    payment, discount, refund
    checkout final payment

balance = total_charges - total_payments

RULES:
- Always recomputed from the full record set. No incremental path.
- Same records in any order -> identical entries and summary.
- Non-positive amounts produce no entry.
- Rejected, cancelled and expired records are not counted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.event_store.contracts import RecordStatus
from core.time.temporal import parse_instant
from engines.hotel_frontdesk.lineage import BookingLineage
from engines.hotel_frontdesk.records import (
    Booking,
    Checkout,
    ClassifiedRecord,
    Discount,
    Extension,
    Payment,
    Penalty,
    Refund,
    StayValue,
)

DEBIT = "debit"
CREDIT = "credit"

COUNTED_STATUSES = frozenset({RecordStatus.APPROVED, RecordStatus.PENDING})

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════
# VALUE OBJECTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LedgerEntry:
    id: str
    date: datetime
    kind: str
    category: str
    amount: int
    description: str = ""
    staff_id: Optional[str] = None

    def __post_init__(self):
        if self.kind not in (DEBIT, CREDIT):
            raise ValueError(f"kind must be '{DEBIT}' or '{CREDIT}'.")
        if not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError("amount must be a positive integer.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "kind": self.kind,
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
            "staff_id": self.staff_id,
        }


@dataclass(frozen=True)
class LedgerSummary:
    total_charges: int = 0
    total_payments: int = 0

    @property
    def balance(self) -> int:
        return self.total_charges - self.total_payments

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_charges": self.total_charges,
            "total_payments": self.total_payments,
            "balance": self.balance,
        }


@dataclass(frozen=True)
class Ledger:
    lineage_id: str
    entries: Tuple[LedgerEntry, ...]
    summary: LedgerSummary

    @property
    def balance(self) -> int:
        return self.summary.balance


# ══════════════════════════════════════════════════════════════
# ENTRY BUILDING
# ══════════════════════════════════════════════════════════════

def _when(value: Optional[StayValue], fallback: Optional[datetime]) -> datetime:
    if value is not None:
        return parse_instant(value)
    if fallback is not None:
        return parse_instant(fallback)
    return _EPOCH


def _entry(
    entries: List[LedgerEntry],
    record: ClassifiedRecord,
    *,
    suffix: str = "",
    kind: str,
    category: str,
    amount: int,
    description: str,
    on: Optional[StayValue] = None,
) -> None:
    if amount <= 0:
        return
    entries.append(LedgerEntry(
        id=record.id + suffix,
        date=_when(on, record.created_at),
        kind=kind,
        category=category,
        amount=amount,
        description=description,
        staff_id=record.event.submitted_by,
    ))


def _segment_entries(entries: List[LedgerEntry], segment: Booking, *, is_root: bool) -> None:
    if is_root:
        _entry(
            entries, segment, suffix="_room_charge",
            kind=DEBIT, category="room_charge", amount=segment.base_charge,
            description=f"Room Charge ({segment.nights} nights @ {segment.room_rate})",
        )
        _entry(
            entries, segment, suffix="_initial_payment",
            kind=CREDIT, category="payment", amount=segment.paid_amount,
            description=f"Initial Payment ({segment.payment_method or 'unspecified'})",
            on=segment.payment_date,
        )
    else:
        _entry(
            entries, segment, suffix="_transfer_charge",
            kind=DEBIT, category="room_charge", amount=segment.base_charge,
            description=f"Room Charge (Transferred to {segment.room_id})",
        )


def _record_entries(entries: List[LedgerEntry], record: ClassifiedRecord) -> None:
    if isinstance(record, Penalty):
        _entry(entries, record, kind=DEBIT, category="penalty", amount=record.amount,
               description=record.reason or "Penalty Fee", on=record.on_date)
    elif isinstance(record, Payment):
        _entry(entries, record, kind=CREDIT, category="payment", amount=record.amount,
               description=record.reason or "Payment Received", on=record.on_date)
    elif isinstance(record, Discount):
        _entry(entries, record, kind=CREDIT, category="discount", amount=record.amount,
               description=record.reason or "Discount Applied", on=record.on_date)
    elif isinstance(record, Refund):
        _entry(entries, record, kind=CREDIT, category="refund", amount=record.amount,
               description=record.reason or "Refund", on=record.on_date)
    elif isinstance(record, Checkout):
        _entry(entries, record, suffix="_final_payment", kind=CREDIT, category="payment",
               amount=record.final_payment, description="Final Settlement at Checkout",
               on=record.checkout_date)
    elif isinstance(record, Extension):
        _entry(entries, record, suffix="_extension", kind=DEBIT, category="room_charge",
               amount=record.additional_cost,
               description=(
                   f"Stay Extension ({record.nights_added} nights to "
                   f"{record.new_check_out.isoformat()})"
               ))


# ══════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════

def ledger_entries(lineage: BookingLineage) -> List[LedgerEntry]:
    """All entries of a lineage, oldest first (ties by id)."""
    entries: List[LedgerEntry] = []
    for segment in lineage.segments:
        _segment_entries(entries, segment, is_root=segment.lineage_key == lineage.root_id)
    for record in lineage.records:
        if record.status in COUNTED_STATUSES:
            _record_entries(entries, record)
    entries.sort(key=lambda e: (e.date, e.id))
    return entries


def summarize(entries: Iterable[LedgerEntry]) -> LedgerSummary:
    charges = 0
    payments = 0
    for entry in entries:
        if entry.kind == DEBIT:
            charges += entry.amount
        else:
            payments += entry.amount
    return LedgerSummary(total_charges=charges, total_payments=payments)


def compute_ledger(lineage: BookingLineage) -> Ledger:
    entries = ledger_entries(lineage)
    return Ledger(lineage_id=lineage.root_id, entries=tuple(entries), summary=summarize(entries))


def resync_balance(lineage: BookingLineage) -> LedgerSummary:
    """
    Fresh summary for a lineage after a financial write.

    Recomputes from scratch; the stored balance snapshot is a display
    cache and is never an input here.
    """
    return compute_ledger(lineage).summary
