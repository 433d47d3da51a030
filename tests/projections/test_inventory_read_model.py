"""
Front Desk — Inventory Read Model Tests
==========================================
"""

from datetime import datetime, timezone

from engines.hotel_frontdesk.classifier import classify_records
from engines.hotel_frontdesk.snapshot import FrontDeskSnapshot
from engines.inventory import events as inv
from engines.inventory.stock_engine import compute_stock_levels
from projections.inventory import InventoryReadModel

NOW = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)


def _snapshot(events, levels=None, degraded=False):
    classification = classify_records(events)
    if levels is None:
        levels = compute_stock_levels(classification.records)
    return FrontDeskSnapshot(
        rooms=(),
        classification=classification,
        taken_at=NOW,
        stock_levels=levels,
        stock_levels_degraded=degraded,
    )


def _store(make):
    return [
        make.category("Bar"),
        make.category("Kitchen"),
        make.collection("Bar", "Spirits"),
        make.collection("Kitchen", "Dry goods"),
        make.item("Bar", "Spirits", "Konyagi", id="IT-1", unit_price=8000),
        make.item("Kitchen", "Dry goods", "Rice", id="IT-2", unit_price=2500),
        make.stock("IT-1", inv.TX_OPENING_STOCK, 5),
        make.stock("IT-2", inv.TX_OPENING_STOCK, 1),
        make.stock("IT-2", inv.TX_STOCK_CONSUMED, 3),
    ]


class TestInventoryReadModel:
    def test_catalog_views(self, make):
        model = InventoryReadModel()
        model.apply_snapshot(_snapshot(_store(make)))

        assert [i.item_id for i in model.items] == ["IT-1", "IT-2"]
        assert model.get_item("IT-2").stock_level == -2
        assert [i.item_id for i in model.oversold()] == ["IT-2"]
        assert sorted(model.by_category()) == ["Bar", "Kitchen"]
        assert model.total_value() == 5 * 8000
        assert model.get_item("nope") is None

    def test_degraded_flag_and_truncate(self, make):
        model = InventoryReadModel()
        model.apply_snapshot(_snapshot(_store(make), degraded=True))
        assert model.to_dict()["degraded"] is True

        model.truncate()
        assert model.items == []
        assert model.degraded is False

    def test_snapshot_levels_are_used(self, make):
        model = InventoryReadModel()
        model.apply_snapshot(_snapshot(_store(make), levels={"IT-1": 9}))
        assert model.get_item("IT-1").stock_level == 9
        assert model.get_item("IT-2").stock_level == 0
