from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from core.event_store.contracts import OperationalEvent, RecordStatus
from core.event_store.models import OperationalRecord, Room
from core.event_store.persistence import (
    InvalidTransitionError,
    RecordNotFoundError,
    StaticSession,
    StoreConstraintViolation,
)
from core.event_store.persistence.repository import DjangoEventLog, DjangoRoomDirectory
from core.time.clock import FixedClock
from engines.hotel_frontdesk import events as fd
from engines.hotel_frontdesk.services import FrontDeskService

pytestmark = pytest.mark.django_db(transaction=True)

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def _run(coro):
    return asyncio.run(coro)


def _event(payload, *, status=RecordStatus.APPROVED, created_at=None, kind="front_desk", **kwargs):
    return OperationalEvent(
        id=str(uuid.uuid4()),
        entity_kind=kind,
        payload=payload,
        status=status,
        submitted_by="staff-1",
        created_at=created_at,
        **kwargs,
    )


def _booking(room_id: str, booking_id: str, **kwargs) -> OperationalEvent:
    payload = fd.build_booking_payload(
        booking_id=booking_id,
        original_id=None,
        guest={"full_name": "Amina Said"},
        room_id=room_id,
        check_in="2024-03-07",
        check_out="2024-03-10",
        room_rate=10000,
        nights=3,
        paid_amount=10000,
    )
    return OperationalEvent(
        id=booking_id, entity_kind="front_desk", payload=payload,
        status=RecordStatus.APPROVED, submitted_by="staff-1", **kwargs,
    )


def test_insert_and_query_round_trip() -> None:
    log = DjangoEventLog()
    late = _run(log.insert(_event({"type": "payment_record", "amount": 2}, created_at=T0 + timedelta(hours=1))))
    early = _run(log.insert(_event({"type": "payment_record", "amount": 1}, created_at=T0)))
    _run(log.insert(_event({"type": "payment_record", "amount": 3}, status=RecordStatus.REJECTED)))
    _run(log.insert(_event({"type": "config_item"}, kind="storekeeper")))

    rows = _run(log.query("front_desk", statuses=(RecordStatus.APPROVED,)))
    assert [e.id for e in rows] == [early.id, late.id]
    assert rows[0].payload == {"type": "payment_record", "amount": 1}
    assert rows[0].created_at == T0

    newest_first = _run(log.query("front_desk", statuses=(RecordStatus.APPROVED,), order="-created_at"))
    assert [e.id for e in newest_first] == [late.id, early.id]

    filtered = _run(log.query("front_desk", predicate=lambda e: e.payload.get("amount") == 2))
    assert [e.id for e in filtered] == [late.id]


def test_query_rejects_unknown_order() -> None:
    with pytest.raises(ValueError):
        _run(DjangoEventLog().query("front_desk", order="payload"))


def test_duplicate_id_is_a_constraint_violation() -> None:
    log = DjangoEventLog()
    event = _event({"type": "payment_record", "amount": 1})
    _run(log.insert(event))
    with pytest.raises(StoreConstraintViolation):
        _run(log.insert(event))


def test_approve_only_pending() -> None:
    log = DjangoEventLog()
    pending = _run(log.insert(_event({"type": "room_reservation"}, status=RecordStatus.PENDING)))
    approved = _run(log.approve(pending.id))
    assert approved.status is RecordStatus.APPROVED

    with pytest.raises(InvalidTransitionError):
        _run(log.approve(pending.id))
    with pytest.raises(RecordNotFoundError):
        _run(log.approve(str(uuid.uuid4())))
    with pytest.raises(RecordNotFoundError):
        _run(log.approve("not-a-uuid"))


def test_soft_delete_hides_record_once() -> None:
    log = DjangoEventLog()
    event = _run(log.insert(_event({"type": "payment_record", "amount": 1})))
    _run(log.soft_delete(event.id))

    assert _run(log.query("front_desk")) == []
    (hidden,) = _run(log.query("front_desk", exclude_deleted=False))
    assert hidden.is_deleted

    with pytest.raises(InvalidTransitionError):
        _run(log.soft_delete(event.id))


def test_edit_appends_version_and_races_lose_at_the_database() -> None:
    log = DjangoEventLog()
    first = _run(log.insert(_event({"type": "config_item", "item_name": "Konyagi"}, kind="storekeeper")))
    second_id = _run(log.edit_with_new_version(first.id, {"type": "config_item", "item_name": "Gin"}))

    (row,) = [e for e in _run(log.query("storekeeper")) if e.id == second_id]
    assert row.lineage_root_id == first.id
    assert row.version_no == 2
    assert row.payload["item_name"] == "Gin"

    third_id = _run(log.edit_with_new_version(second_id, {"type": "config_item", "item_name": "Rum"}))
    (row,) = [e for e in _run(log.query("storekeeper")) if e.id == third_id]
    assert row.version_no == 3
    assert row.lineage_root_id == first.id

    # A second writer still holding version 1 tries to append version 2 again.
    with pytest.raises(StoreConstraintViolation):
        _run(log.edit_with_new_version(first.id, {"type": "config_item", "item_name": "Vodka"}))


def test_hard_delete_removes_dependants() -> None:
    log = DjangoEventLog()
    booking_id = str(uuid.uuid4())
    _run(log.insert(_booking("room-1", booking_id)))
    _run(log.insert(_event(fd.build_folio_payload(fd.PAYMENT_RECORD, booking_id=booking_id, amount=500))))
    keeper = _run(log.insert(_event({"type": "payment_record", "booking_id": "other", "amount": 1})))

    removed = _run(log.hard_delete(booking_id))
    assert removed == 2
    assert [e.id for e in _run(log.query("front_desk", exclude_deleted=False))] == [keeper.id]

    with pytest.raises(RecordNotFoundError):
        _run(log.hard_delete(booking_id))


def test_rows_refuse_update_and_single_delete() -> None:
    event = _run(DjangoEventLog().insert(_event({"type": "payment_record", "amount": 1})))
    row = OperationalRecord.objects.get(id=event.id)
    row.payload = {"type": "payment_record", "amount": 999}
    with pytest.raises(PermissionError):
        row.save()
    with pytest.raises(PermissionError):
        row.delete()


def test_room_directory_lists_rooms_in_number_order() -> None:
    Room.objects.create(room_number="102", room_type="double", price_per_night=12000)
    Room.objects.create(room_number="101", room_type="double", price_per_night=10000)
    Room.objects.create(room_number="103", room_type="suite", price_per_night=20000, is_active=False)

    rooms = _run(DjangoRoomDirectory().list_rooms())
    assert [r.room_number for r in rooms] == ["101", "102", "103"]
    assert rooms[0].price_per_night == 10000
    assert rooms[2].active is False


def test_service_round_trip_on_the_database() -> None:
    room = Room.objects.create(room_number="101", room_type="double", price_per_night=10000)
    log = DjangoEventLog()
    booking_id = str(uuid.uuid4())
    _run(log.insert(_booking(str(room.id), booking_id, created_at=T0)))

    service = FrontDeskService(
        event_log=log,
        rooms=DjangoRoomDirectory(),
        session=StaticSession(),
        clock=FixedClock(datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)),
    )
    result = _run(service.record_payment(booking_id, 5000, "cash"))
    assert result.summary.balance == 30000 - 10000 - 5000

    snapshots = [
        e for e in _run(log.query("front_desk")) if e.record_type == fd.BALANCE_SNAPSHOT
    ]
    assert [s.payload["balance"] for s in snapshots] == [15000]
