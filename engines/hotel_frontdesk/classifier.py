"""
Front Desk Engine: Record Classifier
======================================
Turns raw OperationalEvents into the closed set of typed records.

RULES:
- Pure mapping. No I/O besides logging.
- Unknown tag or missing required field -> QuarantinedRecord
- Missing optional field -> neutral value (0, "", False, None)
- Known auxiliary records (display caches, notes) are skipped silently
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.event_store.contracts import OperationalEvent, RecordStatus
from core.time.temporal import parse_date, parse_instant
from engines.hotel_frontdesk import events as fd
from engines.hotel_frontdesk.records import (
    Booking,
    Cancellation,
    Checkout,
    ClassifiedRecord,
    ConfigChange,
    Discount,
    Extension,
    HousekeepingReport,
    InterruptedStayCredit,
    Interruption,
    Payment,
    Penalty,
    QuarantinedRecord,
    Refund,
    Reservation,
    StayValue,
    StockTransaction,
    Transfer,
    TransferCompletion,
)
from engines.inventory import events as inv

logger = logging.getLogger("frontdesk.classifier")

Classified = Union[ClassifiedRecord, QuarantinedRecord]


class _Rejected(Exception):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


# ══════════════════════════════════════════════════════════════
# FIELD COERCION
# ══════════════════════════════════════════════════════════════

def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _opt_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _amount(value: Any) -> int:
    """Integer minor units. Absent or unparseable -> 0."""
    if value is None or value == "" or isinstance(value, bool):
        return 0
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _stay_value(value: Any) -> Optional[StayValue]:
    """date for date-only values, aware datetime when a time is present."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return parse_instant(value)
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if "T" in text:
            return parse_instant(text)
        return parse_date(text)
    except ValueError:
        raise _Rejected(f"unparseable date {text!r}") from None


def _required(value: Any, name: str) -> Any:
    if value is None or value == "":
        raise _Rejected(f"missing {name}")
    return value


def _required_stay(value: Any, name: str) -> StayValue:
    return _required(_stay_value(value), name)


def _ends_after(start: StayValue, end: StayValue) -> bool:
    if isinstance(start, datetime) and isinstance(end, datetime):
        return end > start
    return parse_date(end) > parse_date(start)


# ══════════════════════════════════════════════════════════════
# PER-TYPE PARSERS
# ══════════════════════════════════════════════════════════════

def _booking(event: OperationalEvent, p: Mapping[str, Any]) -> Booking:
    stay = _section(p, "stay")
    pricing = _section(p, "pricing")
    payment = _section(p, "payment")
    meta = _section(p, "meta")
    guest = _section(p, "guest")
    check_in = _required_stay(stay.get("check_in"), "stay.check_in")
    check_out = _required_stay(stay.get("check_out"), "stay.check_out")
    if not _ends_after(check_in, check_out):
        raise _Rejected("stay.check_out must be after stay.check_in")
    return Booking(
        event=event,
        room_id=_text(_required(stay.get("room_id"), "stay.room_id")),
        check_in=check_in,
        check_out=check_out,
        guest_name=_text(guest.get("full_name") or guest.get("name")),
        parent_id=_opt_text(p.get("original_id")),
        room_rate=_amount(pricing.get("room_rate")),
        nights=_amount(pricing.get("nights")),
        total_room_cost=_amount(pricing.get("total_room_cost")),
        paid_amount=_amount(payment.get("paid_amount")),
        payment_method=_text(payment.get("payment_method")),
        payment_date=_stay_value(payment.get("payment_date")),
        resumed_from_interruption=_flag(meta.get("resumed_from_interruption")),
        source_credit_id=_opt_text(meta.get("source_credit_id")),
    )


def _extension(event: OperationalEvent, p: Mapping[str, Any]) -> Extension:
    ext = _section(p, "extension")
    return Extension(
        event=event,
        booking_id=_text(_required(p.get("booking_id"), "booking_id")),
        new_check_out=_required_stay(ext.get("new_check_out"), "extension.new_check_out"),
        previous_check_out=_stay_value(ext.get("previous_check_out")),
        nights_added=_amount(ext.get("nights_added")),
        additional_cost=_amount(ext.get("additional_cost")),
        reason=_text(ext.get("reason")),
    )


def _transfer(event: OperationalEvent, p: Mapping[str, Any]) -> Transfer:
    tr = _section(p, "transfer")
    return Transfer(
        event=event,
        booking_id=_text(_required(p.get("booking_id"), "booking_id")),
        transfer_date=_required_stay(tr.get("transfer_date"), "transfer.transfer_date"),
        previous_room_id=_text(tr.get("previous_room_id")),
        new_room_id=_text(tr.get("new_room_id")),
        reason=_text(tr.get("reason")),
        refund_amount=_amount(tr.get("refund_amount")),
        new_charge_amount=_amount(tr.get("new_charge_amount")),
    )


def _interruption(event: OperationalEvent, p: Mapping[str, Any]) -> Interruption:
    when = p.get("interruption_date") or p.get("interrupted_at")
    return Interruption(
        event=event,
        booking_id=_text(_required(p.get("booking_id"), "booking_id")),
        interruption_date=_required_stay(when, "interruption_date"),
        room_id=_text(p.get("room_id")),
        reason=_text(p.get("reason")),
    )


def _credit(event: OperationalEvent, p: Mapping[str, Any]) -> InterruptedStayCredit:
    guest = _section(p, "guest")
    logic_status = _text(p.get("status")).lower()
    closed = (
        logic_status in fd.CREDIT_CLOSED_STATUSES
        or event.status in (RecordStatus.CONVERTED, RecordStatus.EXPIRED)
    )
    interrupted_at = _stay_value(p.get("interrupted_at") or p.get("interruption_date"))
    return InterruptedStayCredit(
        event=event,
        booking_id=_text(p.get("booking_id")),
        room_id=_text(p.get("room_id")),
        room_number=_text(p.get("room_number")),
        guest_name=_text(p.get("guest_name") or guest.get("full_name")),
        interrupted_at=interrupted_at or event.created_at,
        credit_remaining=_amount(p.get("credit_remaining")),
        can_resume=_flag(p.get("can_resume")),
        total_paid=_amount(p.get("total_paid")),
        closed=closed,
    )


def _checkout(event: OperationalEvent, p: Mapping[str, Any]) -> Checkout:
    co = _section(p, "checkout")
    return Checkout(
        event=event,
        booking_id=_text(_required(p.get("booking_id"), "booking_id")),
        checkout_date=_stay_value(co.get("checkout_date")) or event.created_at,
        room_number=_text(p.get("room_number")),
        total_due=_amount(co.get("total_due")),
        final_payment=_amount(co.get("final_payment")),
        payment_method=_text(co.get("payment_method")),
        notes=_text(co.get("notes")),
    )


def _cancellation(event: OperationalEvent, p: Mapping[str, Any]) -> Cancellation:
    return Cancellation(
        event=event,
        booking_id=_text(_required(p.get("booking_id"), "booking_id")),
        reason=_text(p.get("reason")),
    )


def _transfer_completion(event: OperationalEvent, p: Mapping[str, Any]) -> TransferCompletion:
    return TransferCompletion(
        event=event,
        transfer_id=_text(_required(p.get("transfer_id"), "transfer_id")),
        booking_id=_text(p.get("booking_id")),
        room_id=_text(p.get("room_id")),
    )


def _reservation(event: OperationalEvent, p: Mapping[str, Any]) -> Reservation:
    guest = _section(p, "guest")
    check_in = _required_stay(p.get("check_in_date"), "check_in_date")
    check_out = _required_stay(p.get("check_out_date"), "check_out_date")
    if not _ends_after(check_in, check_out):
        raise _Rejected("check_out_date must be after check_in_date")
    return Reservation(
        event=event,
        room_id=_text(_required(p.get("room_id"), "room_id")),
        check_in_date=check_in,
        check_out_date=check_out,
        reservation_code=_text(p.get("reservation_code")),
        room_number=_text(p.get("room_number")),
        guest_name=_text(guest.get("name") or guest.get("full_name") or p.get("guest_name")),
        start_time=_text(p.get("start_time")),
        end_time=_text(p.get("end_time")),
        deposit_amount=_amount(p.get("deposit_amount")),
        reservation_status=_text(p.get("status")).lower(),
    )


def _housekeeping(event: OperationalEvent, p: Mapping[str, Any]) -> HousekeepingReport:
    return HousekeepingReport(
        event=event,
        room_id=_text(_required(p.get("room_id"), "room_id")),
        housekeeping_status=_text(
            _required(p.get("housekeeping_status"), "housekeeping_status")
        ).lower(),
        report_date=_stay_value(p.get("report_date")) or event.created_at,
        room_condition=_text(p.get("room_condition")),
        maintenance_required=_flag(p.get("maintenance_required")),
        housekeeper_name=_text(p.get("housekeeper_name")),
    )


def _folio_fields(event: OperationalEvent, p: Mapping[str, Any], *, booking_required: bool) -> Dict[str, Any]:
    booking_id = p.get("booking_id")
    if booking_required:
        _required(booking_id, "booking_id")
    return {
        "event": event,
        "booking_id": _text(booking_id),
        "amount": _amount(p.get("amount")),
        "reason": _text(p.get("reason")),
        "on_date": _stay_value(p.get("date")) or event.created_at,
    }


def _payment(event: OperationalEvent, p: Mapping[str, Any]) -> Payment:
    return Payment(
        payment_method=_text(p.get("payment_method")),
        **_folio_fields(event, p, booking_required=True),
    )


def _penalty(event: OperationalEvent, p: Mapping[str, Any]) -> Penalty:
    return Penalty(**_folio_fields(event, p, booking_required=True))


def _discount(event: OperationalEvent, p: Mapping[str, Any]) -> Discount:
    return Discount(**_folio_fields(event, p, booking_required=True))


def _refund(event: OperationalEvent, p: Mapping[str, Any]) -> Refund:
    source_credit_id = _opt_text(p.get("source_credit_id"))
    return Refund(
        source_credit_id=source_credit_id,
        **_folio_fields(event, p, booking_required=source_credit_id is None),
    )


def _config(event: OperationalEvent, p: Mapping[str, Any]) -> ConfigChange:
    config_type = str(p.get("type"))
    name_field = inv.CONFIG_NAME_FIELDS[config_type]
    attributes = {k: v for k, v in p.items() if k != "type"}
    return ConfigChange(
        event=event,
        config_type=config_type,
        name=_text(_required(p.get(name_field), name_field)),
        attributes=attributes,
    )


def _stock(event: OperationalEvent, p: Mapping[str, Any]) -> StockTransaction:
    tx_type = _text(_required(p.get("transaction_type"), "transaction_type")).lower()
    if tx_type not in inv.VALID_TRANSACTION_TYPES:
        raise _Rejected(f"unknown transaction_type {tx_type!r}")
    item_key = _text(p.get("item_id") or p.get("item_name"))
    return StockTransaction(
        event=event,
        item_key=_required(item_key, "item_id"),
        transaction_type=tx_type,
        quantity_in=_amount(p.get("quantity_in")),
        quantity_out=_amount(p.get("quantity_out")),
        department=_text(p.get("department")),
        unit_price=_amount(p.get("unit_price")),
        event_date=_stay_value(p.get("event_date")) or event.created_at,
    )


def _legacy_opening_stock(event: OperationalEvent, p: Mapping[str, Any]) -> StockTransaction:
    item_key = _text(p.get("item_id") or p.get("item_name"))
    return StockTransaction(
        event=event,
        item_key=_required(item_key, "item_name"),
        transaction_type=inv.TX_OPENING_STOCK,
        quantity_in=_amount(p.get("quantity")),
        department=_text(p.get("department")),
        event_date=_stay_value(p.get("date")) or event.created_at,
    )


_PARSERS: Dict[str, Callable[[OperationalEvent, Mapping[str, Any]], ClassifiedRecord]] = {
    fd.ROOM_BOOKING:            _booking,
    fd.STAY_EXTENSION:          _extension,
    fd.ROOM_TRANSFER:           _transfer,
    fd.STAY_INTERRUPTION:       _interruption,
    fd.INTERRUPTED_STAY_CREDIT: _credit,
    fd.CHECKOUT_RECORD:         _checkout,
    fd.STAY_CANCELLATION:       _cancellation,
    fd.TRANSFER_COMPLETION:     _transfer_completion,
    fd.ROOM_RESERVATION:        _reservation,
    fd.HOUSEKEEPING_REPORT:     _housekeeping,
    fd.PAYMENT_RECORD:          _payment,
    fd.PENALTY_FEE:             _penalty,
    fd.DISCOUNT_APPLIED:        _discount,
    fd.REFUND_RECORD:           _refund,
    inv.CONFIG_CATEGORY:        _config,
    inv.CONFIG_COLLECTION:      _config,
    inv.CONFIG_ITEM:            _config,
    inv.STOCK_TRANSACTION:      _stock,
    inv.LEGACY_OPENING_STOCK:   _legacy_opening_stock,
}
for _legacy in fd.LEGACY_CREDIT_TYPES:
    _PARSERS[_legacy] = _credit


# ══════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════

def classify_record(event: OperationalEvent) -> Optional[Classified]:
    """
    Classify one event.

    Returns a typed record, a QuarantinedRecord, or None for known
    auxiliary records that no derivation reads.
    """
    record_type = event.record_type
    if record_type in fd.AUXILIARY_TYPES:
        return None
    parser = _PARSERS.get(record_type)
    if parser is None:
        reason = f"unknown record type {record_type!r}" if record_type else "missing type tag"
        return QuarantinedRecord(event.id, record_type, reason)
    try:
        return parser(event, event.payload)
    except _Rejected as exc:
        return QuarantinedRecord(event.id, record_type, exc.reason)


@dataclass(frozen=True)
class ClassificationResult:
    records: Tuple[ClassifiedRecord, ...]
    quarantined: Tuple[QuarantinedRecord, ...]

    def of_type(self, *kinds: type) -> List[ClassifiedRecord]:
        return [r for r in self.records if isinstance(r, kinds)]


def classify_records(events: Iterable[OperationalEvent]) -> ClassificationResult:
    """Classify many events; deleted events are dropped before parsing."""
    records: List[ClassifiedRecord] = []
    quarantined: List[QuarantinedRecord] = []
    for event in events:
        if event.is_deleted:
            continue
        result = classify_record(event)
        if result is None:
            continue
        if isinstance(result, QuarantinedRecord):
            logger.warning(
                f"Quarantined record {result.record_id} "
                f"({result.record_type or '?'}): {result.reason}"
            )
            quarantined.append(result)
        else:
            records.append(result)
    return ClassificationResult(tuple(records), tuple(quarantined))
