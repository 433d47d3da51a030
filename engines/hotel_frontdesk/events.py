"""
Front Desk Engine: Record Types and Payload Builders
======================================================
Engine: hotel_frontdesk
Scope:  Guest stays (booking segments, extensions, transfers,
        interruptions, resumption), folio movements (payments,
        penalties, discounts, refunds, checkout), reservations and
        housekeeping reports.

Every payload is a tagged dict; payload["type"] is the tag. Builders
produce the exact shape the classifier reads back.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

ROOM_BOOKING            = "room_booking"
STAY_EXTENSION          = "stay_extension"
ROOM_TRANSFER           = "room_transfer"
STAY_INTERRUPTION       = "stay_interruption"
INTERRUPTED_STAY_CREDIT = "interrupted_stay_credit"
CHECKOUT_RECORD         = "checkout_record"
ROOM_RESERVATION        = "room_reservation"
HOUSEKEEPING_REPORT     = "housekeeping_report"
PAYMENT_RECORD          = "payment_record"
PENALTY_FEE             = "penalty_fee"
DISCOUNT_APPLIED        = "discount_applied"
REFUND_RECORD           = "refund_record"
STAY_CANCELLATION       = "stay_cancellation"
TRANSFER_COMPLETION     = "transfer_completion"
BALANCE_SNAPSHOT        = "balance_snapshot"

# Older credit tags still present in the log.
LEGACY_CREDIT_TYPES = frozenset({"interrupted_stay", "paused_stay"})

# Known records that carry nothing the derivations read.
AUXILIARY_TYPES = frozenset({
    BALANCE_SNAPSHOT, "guest_record", "operational_note",
})

FRONT_DESK_RECORD_TYPES = (
    ROOM_BOOKING, STAY_EXTENSION, ROOM_TRANSFER, STAY_INTERRUPTION,
    INTERRUPTED_STAY_CREDIT, CHECKOUT_RECORD, ROOM_RESERVATION,
    HOUSEKEEPING_REPORT, PAYMENT_RECORD, PENALTY_FEE, DISCOUNT_APPLIED,
    REFUND_RECORD, STAY_CANCELLATION, TRANSFER_COMPLETION,
)

VALID_HOUSEKEEPING_STATUSES = frozenset({
    "cleaned", "dirty", "maintenance", "inspected",
})
VALID_PAYMENT_METHODS = frozenset({
    "cash", "transfer", "pos", "card",
})

# Reservation auto-approval roles.
APPROVER_ROLES = frozenset({"admin", "manager"})

# Credit payload statuses that close the credit.
CREDIT_CLOSED_STATUSES = frozenset({"resumed", "cancelled_interrupted"})


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def build_booking_payload(
    *,
    booking_id: str,
    original_id: Optional[str],
    guest: Dict[str, Any],
    room_id: str,
    check_in: Any,
    check_out: Any,
    room_rate: int,
    nights: int,
    paid_amount: int = 0,
    payment_method: str = "transfer",
    adults: int = 1,
    children: int = 0,
    meta: Optional[Dict[str, Any]] = None,
) -> dict:
    total = room_rate * nights
    payload = {
        "type":        ROOM_BOOKING,
        "booking_id":  booking_id,
        "guest":       dict(guest),
        "stay": {
            "room_id":   room_id,
            "check_in":  _iso(check_in),
            "check_out": _iso(check_out),
            "adults":    adults,
            "children":  children,
        },
        "pricing": {
            "room_rate":       room_rate,
            "nights":          nights,
            "total_room_cost": total,
        },
        "payment": {
            "paid_amount":    paid_amount,
            "payment_method": payment_method,
            "balance":        max(0, total - paid_amount),
        },
        "meta":        dict(meta or {}),
        "status":      "checked_in",
    }
    if original_id:
        payload["original_id"] = original_id
    return payload


def build_extension_payload(
    *,
    booking_id: str,
    previous_check_out: Any,
    new_check_out: Any,
    nights_added: int,
    additional_cost: int,
    reason: str = "",
) -> dict:
    return {
        "type":       STAY_EXTENSION,
        "booking_id": booking_id,
        "extension": {
            "previous_check_out": _iso(previous_check_out),
            "new_check_out":      _iso(new_check_out),
            "nights_added":       nights_added,
            "additional_cost":    additional_cost,
            "reason":             reason,
        },
    }


def build_transfer_payload(
    *,
    booking_id: str,
    previous_room_id: str,
    new_room_id: str,
    transfer_date: Any,
    reason: str,
    refund_amount: int,
    new_charge_amount: int,
) -> dict:
    return {
        "type":       ROOM_TRANSFER,
        "booking_id": booking_id,
        "transfer": {
            "previous_room_id":  previous_room_id,
            "new_room_id":       new_room_id,
            "transfer_date":     _iso(transfer_date),
            "reason":            reason,
            "refund_amount":     refund_amount,
            "new_charge_amount": new_charge_amount,
        },
    }


def build_interruption_payload(
    *, booking_id: str, room_id: str, interruption_date: Any, reason: str = "",
) -> dict:
    return {
        "type":              STAY_INTERRUPTION,
        "booking_id":        booking_id,
        "room_id":           room_id,
        "interruption_date": _iso(interruption_date),
        "reason":            reason,
    }


def build_credit_payload(
    *,
    booking_id: str,
    room_id: str,
    room_number: str,
    guest_name: str,
    interrupted_at: Any,
    total_paid: int,
    credit_remaining: int,
    can_resume: bool,
) -> dict:
    return {
        "type":             INTERRUPTED_STAY_CREDIT,
        "booking_id":       booking_id,
        "room_id":          room_id,
        "room_number":      room_number,
        "guest_name":       guest_name,
        "interrupted_at":   _iso(interrupted_at),
        "total_paid":       total_paid,
        "credit_remaining": credit_remaining,
        "can_resume":       can_resume,
        "status":           "interrupted",
    }


def build_checkout_payload(
    *,
    booking_id: str,
    room_number: str,
    checkout_date: Any,
    total_due: int,
    final_payment: int,
    payment_method: str,
    notes: str = "",
) -> dict:
    return {
        "type":        CHECKOUT_RECORD,
        "booking_id":  booking_id,
        "room_number": room_number,
        "checkout": {
            "checkout_date":  _iso(checkout_date),
            "total_due":      total_due,
            "final_payment":  final_payment,
            "payment_method": payment_method,
            "notes":          notes,
        },
    }


def build_reservation_payload(
    *,
    reservation_code: str,
    guest: Dict[str, Any],
    room_id: str,
    room_number: str,
    room_type: str,
    check_in_date: Any,
    check_out_date: Any,
    start_time: str,
    end_time: str,
    deposit_amount: int,
    status: str,
    created_by_role: str,
    notes: str = "",
) -> dict:
    return {
        "type":             ROOM_RESERVATION,
        "reservation_code": reservation_code,
        "guest":            dict(guest),
        "room_id":          room_id,
        "room_number":      room_number,
        "room_type":        room_type,
        "check_in_date":    _iso(check_in_date),
        "check_out_date":   _iso(check_out_date),
        "start_time":       start_time,
        "end_time":         end_time,
        "deposit_amount":   deposit_amount,
        "payment_status":   "deposit_paid" if deposit_amount > 0 else "unpaid",
        "status":           status,
        "created_by_role":  created_by_role,
        "notes":            notes,
    }


def build_housekeeping_payload(
    *,
    room_id: str,
    room_number: str,
    housekeeping_status: str,
    report_date: Any,
    room_condition: str = "",
    maintenance_required: bool = False,
    housekeeper_name: str = "",
    notes: str = "",
) -> dict:
    return {
        "type":                 HOUSEKEEPING_REPORT,
        "room_id":              room_id,
        "room_number":          room_number,
        "housekeeping_status":  housekeeping_status,
        "room_condition":       room_condition,
        "maintenance_required": maintenance_required,
        "report_date":          _iso(report_date),
        "housekeeper_name":     housekeeper_name,
        "notes":                notes,
    }


def build_folio_payload(
    record_type: str,
    *,
    booking_id: Optional[str],
    amount: int,
    reason: str = "",
    on_date: Any = None,
    **extra: Any,
) -> dict:
    """Payment, penalty, discount and refund share one shape."""
    payload = {
        "type":       record_type,
        "booking_id": booking_id,
        "amount":     amount,
        "reason":     reason,
        "date":       _iso(on_date),
    }
    payload.update(extra)
    return payload


def build_cancellation_payload(*, booking_id: str, reason: str) -> dict:
    return {
        "type":       STAY_CANCELLATION,
        "booking_id": booking_id,
        "reason":     reason,
    }


def build_transfer_completion_payload(
    *, transfer_id: str, booking_id: str, room_id: str, completed_at: Any,
) -> dict:
    return {
        "type":         TRANSFER_COMPLETION,
        "transfer_id":  transfer_id,
        "booking_id":   booking_id,
        "room_id":      room_id,
        "completed_at": _iso(completed_at),
    }


def build_balance_snapshot_payload(
    *, booking_id: str, total_charges: int, total_payments: int, balance: int, taken_at: Any,
) -> dict:
    return {
        "type":           BALANCE_SNAPSHOT,
        "booking_id":     booking_id,
        "total_charges":  total_charges,
        "total_payments": total_payments,
        "balance":        balance,
        "taken_at":       _iso(taken_at),
    }
