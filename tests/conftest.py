"""
Shared builders for front desk tests.

EventFactory produces OperationalEvents in the exact payload shapes the
application writes, with deterministic ids and creation times.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from core.event_store.contracts import OperationalEvent, RecordStatus, RoomMaster
from core.time.temporal import nights_between
from engines.hotel_frontdesk import events as fd
from engines.hotel_frontdesk.classifier import classify_records
from engines.inventory import events as inv

BASE_CREATED = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


class EventFactory:
    def __init__(self) -> None:
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def event(
        self,
        payload: dict,
        *,
        id: Optional[str] = None,
        status: RecordStatus = RecordStatus.APPROVED,
        kind: str = "front_desk",
        lineage_root_id: Optional[str] = None,
        version_no: int = 1,
        created_at: Optional[datetime] = None,
        deleted_at: Optional[datetime] = None,
        submitted_by: str = "staff-1",
    ) -> OperationalEvent:
        self._seq += 1
        return OperationalEvent(
            id=id or f"EV-{self._seq}",
            entity_kind=kind,
            payload=payload,
            status=status,
            lineage_root_id=lineage_root_id,
            version_no=version_no,
            submitted_by=submitted_by,
            created_at=created_at or BASE_CREATED + timedelta(minutes=self._seq),
            deleted_at=deleted_at,
        )

    # ── stays ────────────────────────────────────────────────

    def booking(
        self,
        *,
        id: Optional[str] = None,
        room_id: str = "R101",
        check_in: Any = "2024-03-07",
        check_out: Any = "2024-03-10",
        rate: int = 10000,
        nights: Optional[int] = None,
        paid: int = 0,
        guest: str = "Amina Said",
        original_id: Optional[str] = None,
        meta: Optional[dict] = None,
        **kwargs: Any,
    ) -> OperationalEvent:
        id = id or self._next("BK")
        if nights is None:
            nights = nights_between(str(check_in)[:10], str(check_out)[:10])
        payload = fd.build_booking_payload(
            booking_id=id,
            original_id=original_id,
            guest={"full_name": guest},
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            room_rate=rate,
            nights=nights,
            paid_amount=paid,
            meta=meta,
        )
        return self.event(payload, id=id, **kwargs)

    def extension(self, booking_id: str, new_check_out: Any, *, nights_added: int = 1,
                  additional_cost: int = 0, **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_extension_payload(
            booking_id=booking_id,
            previous_check_out=None,
            new_check_out=new_check_out,
            nights_added=nights_added,
            additional_cost=additional_cost,
        ), **kwargs)

    def transfer(self, booking_id: str, transfer_date: Any, *, previous_room_id: str = "R101",
                 new_room_id: str = "R102", refund_amount: int = 0, **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_transfer_payload(
            booking_id=booking_id,
            previous_room_id=previous_room_id,
            new_room_id=new_room_id,
            transfer_date=transfer_date,
            reason="noise",
            refund_amount=refund_amount,
            new_charge_amount=0,
        ), **kwargs)

    def interruption(self, booking_id: str, on: Any, *, room_id: str = "R101",
                     **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_interruption_payload(
            booking_id=booking_id, room_id=room_id, interruption_date=on, reason="family emergency",
        ), **kwargs)

    def credit(self, booking_id: str, *, room_id: str = "R101", room_number: str = "101",
               credit_remaining: int = 15000, can_resume: bool = True,
               **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_credit_payload(
            booking_id=booking_id,
            room_id=room_id,
            room_number=room_number,
            guest_name="Amina Said",
            interrupted_at="2024-03-08",
            total_paid=30000,
            credit_remaining=credit_remaining,
            can_resume=can_resume,
        ), **kwargs)

    def checkout(self, booking_id: str, *, final_payment: int = 0,
                 on: Any = "2024-03-10T10:00:00+00:00", **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_checkout_payload(
            booking_id=booking_id,
            room_number="101",
            checkout_date=on,
            total_due=final_payment,
            final_payment=final_payment,
            payment_method="cash",
        ), **kwargs)

    def cancellation(self, booking_id: str, **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_cancellation_payload(booking_id=booking_id, reason="no show"), **kwargs)

    def folio(self, record_type: str, booking_id: Optional[str], amount: int, *,
              on: Any = None, **kwargs: Any) -> OperationalEvent:
        extra = {}
        for key in ("payment_method", "source_credit_id"):
            if key in kwargs:
                extra[key] = kwargs.pop(key)
        return self.event(fd.build_folio_payload(
            record_type, booking_id=booking_id, amount=amount, reason="", on_date=on, **extra,
        ), **kwargs)

    def payment(self, booking_id: str, amount: int, **kwargs: Any) -> OperationalEvent:
        kwargs.setdefault("payment_method", "cash")
        return self.folio(fd.PAYMENT_RECORD, booking_id, amount, **kwargs)

    # ── reservations & housekeeping ──────────────────────────

    def reservation(self, *, room_id: str = "R101", check_in_date: Any = "2024-04-01",
                    check_out_date: Any = "2024-04-03", start_time: str = "14:00",
                    end_time: str = "11:00", reservation_status: str = "confirmed",
                    id: Optional[str] = None, **kwargs: Any) -> OperationalEvent:
        id = id or self._next("RS")
        return self.event(fd.build_reservation_payload(
            reservation_code=f"RES-2024-{self._seq:05d}",
            guest={"name": "Baraka Otieno", "phone": ""},
            room_id=room_id,
            room_number=room_id[1:],
            room_type="double",
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            start_time=start_time,
            end_time=end_time,
            deposit_amount=5000,
            status=reservation_status,
            created_by_role="staff",
        ), id=id, **kwargs)

    def housekeeping(self, room_id: str, status: str, *, on: Any = "2024-03-08T09:00:00+00:00",
                     **kwargs: Any) -> OperationalEvent:
        return self.event(fd.build_housekeeping_payload(
            room_id=room_id,
            room_number=room_id[1:],
            housekeeping_status=status,
            report_date=on,
        ), **kwargs)

    # ── inventory ────────────────────────────────────────────

    def category(self, name: str, **kwargs: Any) -> OperationalEvent:
        kwargs.setdefault("kind", "storekeeper")
        return self.event(inv.build_category_payload(category_name=name), **kwargs)

    def collection(self, category: str, name: str, **kwargs: Any) -> OperationalEvent:
        kwargs.setdefault("kind", "storekeeper")
        return self.event(inv.build_collection_payload(category=category, collection_name=name), **kwargs)

    def item(self, category: str, collection: str, name: str, *, unit_price: int = 500,
             **kwargs: Any) -> OperationalEvent:
        kwargs.setdefault("kind", "storekeeper")
        return self.event(inv.build_item_payload(
            category=category, collection_name=collection, item_name=name,
            unit="bottle", unit_price=unit_price,
        ), **kwargs)

    def stock(self, item_id: str, transaction_type: str, quantity: int, **kwargs: Any) -> OperationalEvent:
        kwargs.setdefault("kind", "storekeeper")
        return self.event(inv.build_stock_transaction_payload(
            item_id=item_id, item_name=item_id, transaction_type=transaction_type, quantity=quantity,
        ), **kwargs)

    @staticmethod
    def classify(*events: OperationalEvent):
        return classify_records(events).records


@pytest.fixture
def make() -> EventFactory:
    return EventFactory()


@pytest.fixture
def rooms():
    return [
        RoomMaster("R101", "101", "double", 10000),
        RoomMaster("R102", "102", "double", 12000),
        RoomMaster("R103", "103", "suite", 20000),
    ]
