"""
Front Desk — Ledger Aggregator Tests
=======================================
balance = total_charges - total_payments, always recomputed.
"""

import itertools

import pytest

from core.event_store.contracts import RecordStatus
from engines.hotel_frontdesk import events as fd
from engines.hotel_frontdesk.ledger_engine import (
    DEBIT,
    LedgerEntry,
    compute_ledger,
    resync_balance,
)
from engines.hotel_frontdesk.lineage import group_lineages


def _ledger(make, *events):
    index = group_lineages(make.classify(*events))
    (lineage,) = index.lineages
    return compute_ledger(lineage)


class TestBalance:
    def test_initial_payment_then_settlement(self, make):
        booking = make.booking(id="BK-1", rate=10000, nights=3, paid=10000)
        ledger = _ledger(make, booking)
        assert ledger.summary.total_charges == 30000
        assert ledger.summary.total_payments == 10000
        assert ledger.balance == 20000

        ledger = _ledger(make, booking, make.payment("BK-1", 20000))
        assert ledger.balance == 0

    def test_every_movement_kind(self, make):
        ledger = _ledger(
            make,
            make.booking(id="BK-1", rate=10000, nights=3, paid=5000),
            make.extension("BK-1", "2024-03-12", nights_added=2, additional_cost=20000),
            make.folio(fd.PENALTY_FEE, "BK-1", 3000),
            make.folio(fd.DISCOUNT_APPLIED, "BK-1", 2000),
            make.folio(fd.REFUND_RECORD, "BK-1", 1000),
            make.payment("BK-1", 4000),
            make.checkout("BK-1", final_payment=41000),
        )
        assert ledger.summary.total_charges == 30000 + 20000 + 3000
        assert ledger.summary.total_payments == 5000 + 2000 + 1000 + 4000 + 41000
        assert ledger.balance == 0
        categories = sorted(e.category for e in ledger.entries)
        assert categories == sorted([
            "room_charge", "room_charge", "penalty", "payment", "discount",
            "refund", "payment", "payment",
        ])

    def test_transfer_segment_charge_is_debited(self, make):
        ledger = _ledger(
            make,
            make.booking(id="BK-1", rate=10000, nights=3, paid=30000),
            make.transfer("BK-1", "2024-03-08"),
            make.folio(fd.REFUND_RECORD, "BK-1", 20000),
            make.booking(id="BK-2", room_id="R102", check_in="2024-03-08", rate=12000,
                         original_id="BK-1"),
        )
        assert ledger.summary.total_charges == 30000 + 24000
        assert ledger.summary.total_payments == 30000 + 20000
        assert ledger.balance == 4000

    def test_falls_back_to_rate_times_nights(self, make):
        event = make.event({
            "type": "room_booking",
            "stay": {"room_id": "R101", "check_in": "2024-03-07", "check_out": "2024-03-09"},
            "pricing": {"room_rate": 8000, "nights": 2},
        }, id="BK-1")
        assert _ledger(make, event).summary.total_charges == 16000

    def test_non_positive_amounts_produce_no_entry(self, make):
        ledger = _ledger(
            make,
            make.booking(id="BK-1", rate=10000, nights=1, check_out="2024-03-08"),
            make.payment("BK-1", 0),
            make.payment("BK-1", -500),
        )
        assert [e.category for e in ledger.entries] == ["room_charge"]

    def test_rejected_movements_are_not_counted(self, make):
        ledger = _ledger(
            make,
            make.booking(id="BK-1", rate=10000, nights=1, check_out="2024-03-08"),
            make.payment("BK-1", 10000, status=RecordStatus.REJECTED),
        )
        assert ledger.balance == 10000

    def test_balance_snapshot_is_never_an_input(self, make):
        snapshot = make.event(fd.build_balance_snapshot_payload(
            booking_id="BK-1", total_charges=1, total_payments=1, balance=999, taken_at=None,
        ))
        ledger = _ledger(make, make.booking(id="BK-1", rate=10000, nights=3), snapshot)
        assert ledger.balance == 30000


class TestDeterminism:
    def test_order_independent(self, make):
        events = [
            make.booking(id="BK-1", rate=10000, nights=3, paid=10000),
            make.payment("BK-1", 5000),
            make.folio(fd.PENALTY_FEE, "BK-1", 2500),
            make.extension("BK-1", "2024-03-11", additional_cost=10000),
        ]
        results = {
            tuple(e.to_dict()["id"] for e in _ledger(make, *ordering).entries)
            for ordering in itertools.permutations(events)
        }
        assert len(results) == 1

    def test_recompute_is_idempotent(self, make):
        records = make.classify(
            make.booking(id="BK-1", rate=10000, nights=3, paid=10000),
            make.payment("BK-1", 5000),
        )
        (lineage,) = group_lineages(records).lineages
        assert resync_balance(lineage) == resync_balance(lineage)
        assert resync_balance(lineage).balance == 15000

    def test_entries_sorted_by_date(self, make):
        ledger = _ledger(
            make,
            make.booking(id="BK-1", rate=10000, nights=3),
            make.payment("BK-1", 100, on="2024-03-09T10:00:00Z"),
            make.payment("BK-1", 200, on="2024-03-08T10:00:00Z"),
        )
        dates = [e.date for e in ledger.entries]
        assert dates == sorted(dates)


class TestLedgerEntry:
    def test_rejects_zero_amount(self):
        from datetime import datetime, timezone
        with pytest.raises(ValueError, match="positive"):
            LedgerEntry("E-1", datetime(2024, 1, 1, tzinfo=timezone.utc), DEBIT, "penalty", 0)

    def test_rejects_unknown_kind(self):
        from datetime import datetime, timezone
        with pytest.raises(ValueError, match="kind"):
            LedgerEntry("E-1", datetime(2024, 1, 1, tzinfo=timezone.utc), "other", "penalty", 10)
