"""
Front Desk — Occupancy Engine and Credit Tests
=================================================
Room status is rebuilt from scratch for every "now".
"""

from datetime import date, datetime, timezone

import pytest

from engines.hotel_frontdesk.credits import open_credits
from engines.hotel_frontdesk.lineage import group_lineages
from engines.hotel_frontdesk.occupancy_engine import (
    AVAILABLE,
    CLEANING,
    HK_CLEAN,
    HK_NOT_REPORTED,
    MAINTENANCE,
    OCCUPIED,
    PENDING,
    RESERVED,
    RoomStatus,
    derive_room_statuses,
)

UTC = timezone.utc


def _at(*args):
    return datetime(*args, tzinfo=UTC)


def _statuses(rooms, records, now):
    return {
        s.room_id: s
        for s in derive_room_statuses(rooms, records, group_lineages(records), now=now)
    }


class TestOccupied:
    def test_extension_keeps_room_occupied(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", check_in="2024-03-07", check_out="2024-03-10"),
            make.extension("BK-1", "2024-03-12", nights_added=2),
        )
        on_11th = _statuses(rooms, records, _at(2024, 3, 11, 12))["R101"]
        assert on_11th.status == OCCUPIED
        assert on_11th.booking_id == "BK-1"
        assert on_11th.check_out_date == date(2024, 3, 12)
        assert on_11th.current_guest == "Amina Said"

        on_12th = _statuses(rooms, records, _at(2024, 3, 12, 12))["R101"]
        assert on_12th.status == AVAILABLE

    def test_checkout_frees_room_immediately(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", check_in="2024-03-07", check_out="2024-03-10"),
            make.checkout("BK-1", on="2024-03-08T10:00:00Z"),
        )
        assert _statuses(rooms, records, _at(2024, 3, 8, 12))["R101"].status == AVAILABLE

    def test_transfer_moves_guest(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", room_id="R101"),
            make.transfer("BK-1", "2024-03-08"),
            make.booking(id="BK-2", room_id="R102", check_in="2024-03-08", original_id="BK-1"),
            make.housekeeping("R101", "dirty", on="2024-03-08T10:00:00Z"),
        )
        statuses = _statuses(rooms, records, _at(2024, 3, 8, 15))
        assert statuses["R101"].status == CLEANING
        assert statuses["R102"].status == OCCUPIED
        assert statuses["R102"].booking_id == "BK-2"

    def test_inactive_rooms_are_skipped(self, make, rooms):
        from core.event_store.contracts import RoomMaster
        rooms = rooms + [RoomMaster("R999", "999", active=False)]
        assert "R999" not in _statuses(rooms, make.classify(), _at(2024, 3, 8, 12))


class TestInterrupted:
    def test_interrupted_stay_frees_room(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", check_in="2024-03-07", check_out="2024-03-12"),
            make.interruption("BK-1", "2024-03-09"),
        )
        status = _statuses(rooms, records, _at(2024, 3, 10, 12))["R101"]
        assert status.status == AVAILABLE
        assert status.interrupted is True

        before = _statuses(rooms, records, _at(2024, 3, 8, 12))["R101"]
        assert before.status == OCCUPIED

    def test_interruption_flag_ends_with_booked_dates(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", check_in="2024-03-07", check_out="2024-03-12"),
            make.interruption("BK-1", "2024-03-09"),
        )
        after = _statuses(rooms, records, _at(2024, 3, 13, 12))["R101"]
        assert after.interrupted is False


class TestPendingResumption:
    def test_open_credit_flags_room_until_resumed(self, make, rooms):
        booking = make.booking(id="BK-1", check_in="2024-03-01", check_out="2024-03-05")
        credit = make.credit("BK-1", id="CR-1", credit_remaining=15000, can_resume=True)
        records = make.classify(booking, credit)
        assert _statuses(rooms, records, _at(2024, 3, 8, 12))["R101"].pending_resumption is True
        assert [c.id for c in open_credits(records)] == ["CR-1"]

        resumed = make.booking(
            id="BK-9", room_id="R103", check_in="2024-03-20", check_out="2024-03-22",
            original_id="CR-1",
            meta={"resumed_from_interruption": True, "source_credit_id": "CR-1"},
        )
        records = make.classify(booking, credit, resumed)
        assert _statuses(rooms, records, _at(2024, 3, 8, 12))["R101"].pending_resumption is False
        assert open_credits(records) == []

    def test_refund_consumes_credit(self, make):
        records = make.classify(
            make.credit("BK-1", id="CR-1"),
            make.event({"type": "refund_record", "amount": 15000, "source_credit_id": "CR-1"}),
        )
        assert open_credits(records) == []

    @pytest.mark.parametrize("kwargs", [
        {"credit_remaining": 0},
        {"can_resume": False},
    ])
    def test_unresumable_credits_are_not_open(self, make, kwargs):
        assert open_credits(make.classify(make.credit("BK-1", **kwargs))) == []


class TestReserved:
    def test_reservation_in_force(self, make, rooms):
        records = make.classify(make.reservation(id="RS-1", room_id="R102"))
        status = _statuses(rooms, records, _at(2024, 4, 2, 9))["R102"]
        assert status.status == RESERVED
        assert status.current_guest == "Baraka Otieno"

    def test_upcoming_reservation_is_attached(self, make, rooms):
        records = make.classify(make.reservation(id="RS-1", room_id="R102"))
        status = _statuses(rooms, records, _at(2024, 3, 25, 9))["R102"]
        assert status.status == AVAILABLE
        assert status.upcoming_reservation.reservation_id == "RS-1"
        assert status.upcoming_reservation.starts_at == _at(2024, 4, 1, 14)

    def test_future_booking_marks_reserved(self, make, rooms):
        records = make.classify(make.booking(id="BK-1", check_in="2024-03-20", check_out="2024-03-22"))
        assert _statuses(rooms, records, _at(2024, 3, 8, 12))["R101"].status == RESERVED

    def test_occupied_wins_over_reservation(self, make, rooms):
        records = make.classify(
            make.booking(id="BK-1", check_in="2024-03-30", check_out="2024-04-03"),
            make.reservation(id="RS-1"),
        )
        assert _statuses(rooms, records, _at(2024, 4, 2, 9))["R101"].status == OCCUPIED


class TestHousekeeping:
    @pytest.mark.parametrize("report, expected", [
        ("dirty", CLEANING),
        ("maintenance", MAINTENANCE),
        ("inspected", AVAILABLE),
        ("cleaned", AVAILABLE),
        ("smells-odd", PENDING),
    ])
    def test_latest_report_maps_to_status(self, make, rooms, report, expected):
        records = make.classify(make.housekeeping("R103", report))
        assert _statuses(rooms, records, _at(2024, 3, 8, 12))["R103"].status == expected

    def test_latest_report_wins(self, make, rooms):
        records = make.classify(
            make.housekeeping("R103", "cleaned", on="2024-03-08T11:00:00Z"),
            make.housekeeping("R103", "dirty", on="2024-03-08T09:00:00Z"),
        )
        status = _statuses(rooms, records, _at(2024, 3, 8, 12))["R103"]
        assert status.status == AVAILABLE
        assert status.housekeeping_status == HK_CLEAN

    def test_no_report(self, make, rooms):
        status = _statuses(rooms, make.classify(), _at(2024, 3, 8, 12))["R103"]
        assert status.status == AVAILABLE
        assert status.housekeeping_status == HK_NOT_REPORTED


class TestRoomStatus:
    def test_rejects_unknown_status(self):
        with pytest.raises(ValueError, match="status must be one of"):
            RoomStatus(room_id="R1", room_number="1", status="haunted")

    def test_requires_aware_now(self, rooms):
        with pytest.raises(ValueError, match="timezone-aware"):
            derive_room_statuses(rooms, [], group_lineages([]), now=datetime(2024, 3, 8))
