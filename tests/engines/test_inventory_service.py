"""
Front Desk — Inventory Service Tests
=======================================
Versioned storekeeper configuration and derived stock levels.
"""

import asyncio
import itertools
from datetime import datetime, timezone

import pytest

from core.event_store.persistence import (
    InMemoryEventLog,
    StaticSession,
    StoreUnavailableError,
)
from core.time.clock import FixedClock
from engines.hotel_frontdesk.errors import (
    PartialWriteFailure,
    SessionExpiredError,
    TransientFetchError,
    ValidationError,
)
from engines.inventory import events as inv
from engines.inventory.services import InventoryService

NOW = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)


def _ids(prefix):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter):03d}"


class StockOutageLog(InMemoryEventLog):
    """Refuses stock transactions; configuration writes go through."""

    async def insert(self, event):
        if event.record_type == inv.STOCK_TRANSACTION:
            raise StoreUnavailableError("insert", "connection reset")
        return await super().insert(event)


class UnreachableLog(InMemoryEventLog):
    async def query(self, entity_kind, **kwargs):
        raise StoreUnavailableError("query", "timeout")


def _service(log_class=InMemoryEventLog, valid=True):
    clock = FixedClock(NOW)
    log = log_class(clock=clock, id_factory=_ids("V"))
    service = InventoryService(
        event_log=log,
        session=StaticSession(valid=valid),
        clock=clock,
        id_factory=_ids("ID"),
    )
    return service, log


def _run(coro):
    return asyncio.run(coro)


async def _stock_bar(service, opening_stock=24):
    await service.create_category("Bar")
    await service.create_collection("Bar", "Spirits")
    return await service.create_item(
        category="Bar", collection_name="Spirits", item_name="Konyagi",
        unit="bottle", unit_price=8000, opening_stock=opening_stock,
    )


class TestConfiguration:
    def test_item_appears_with_opening_stock(self):
        service, _ = _service()
        item_id = _run(_stock_bar(service))
        (entry,) = _run(service.catalog())
        assert entry.item_id == item_id
        assert entry.item_name == "Konyagi"
        assert entry.stock_level == 24
        assert entry.unit_price == 8000

    def test_duplicate_category_is_case_insensitive(self):
        service, _ = _service()
        _run(service.create_category("Bar"))
        with pytest.raises(ValidationError, match="already exists"):
            _run(service.create_category("bar"))

    def test_collection_needs_category(self):
        service, _ = _service()
        with pytest.raises(ValidationError, match="not found"):
            _run(service.create_collection("Kitchen", "Dry goods"))

    def test_duplicate_collection_in_category(self):
        service, _ = _service()
        _run(service.create_category("Bar"))
        _run(service.create_collection("Bar", "Spirits"))
        with pytest.raises(ValidationError, match="already exists in Bar"):
            _run(service.create_collection("Bar", "spirits"))

    def test_item_needs_collection(self):
        service, _ = _service()
        _run(service.create_category("Bar"))
        with pytest.raises(ValidationError, match="collection"):
            _run(service.create_item(
                category="Bar", collection_name="Beer", item_name="Safari",
                unit="bottle", unit_price=3000,
            ))

    def test_negative_price_is_refused(self):
        service, log = _service()
        with pytest.raises(ValidationError) as exc:
            _run(service.create_item(
                category="Bar", collection_name="Beer", item_name="Safari",
                unit="bottle", unit_price=-1,
            ))
        assert exc.value.field == "unit_price"
        assert log.all() == []

    def test_opening_stock_failure_is_partial(self):
        service, log = _service(StockOutageLog)
        with pytest.raises(PartialWriteFailure) as exc:
            _run(_stock_bar(service))
        item = log.get(exc.value.created_id)
        assert item.record_type == inv.CONFIG_ITEM
        assert exc.value.failed_step == "opening stock"

    def test_rename_appends_version(self):
        service, log = _service()
        item_id = _run(_stock_bar(service))
        new_id = _run(service.rename_item(item_id, "Konyagi 750ml"))
        assert log.get(new_id).version_no == 2

        (entry,) = _run(service.catalog())
        assert entry.item_id == item_id
        assert entry.item_name == "Konyagi 750ml"
        assert entry.version_no == 2
        assert entry.stock_level == 24

    def test_rename_to_taken_name(self):
        service, _ = _service()
        item_id = _run(_stock_bar(service))
        _run(service.create_item(
            category="Bar", collection_name="Spirits", item_name="Gin",
            unit="bottle", unit_price=9000,
        ))
        with pytest.raises(ValidationError, match="already exists"):
            _run(service.rename_item(item_id, "gin"))


class TestStockMovements:
    def test_sale_reduces_level_and_carries_amount(self):
        service, log = _service()
        item_id = _run(_stock_bar(service, opening_stock=3))
        movement_id = _run(service.record_stock_movement(item_id, inv.TX_SOLD, 2, department="bar"))
        movement = log.get(movement_id)
        assert movement.financial_amount == 16000
        assert movement.payload["quantity_out"] == 2

        (entry,) = _run(service.catalog())
        assert entry.stock_level == 1

    def test_unreadable_price_sells_at_zero(self, make):
        clock = FixedClock(NOW)
        log = InMemoryEventLog(
            [make.item("Bar", "Spirits", "Konyagi", id="IT-1", unit_price="Infinity")],
            clock=clock, id_factory=_ids("V"),
        )
        service = InventoryService(
            event_log=log, session=StaticSession(), clock=clock, id_factory=_ids("ID"),
        )
        movement = log.get(_run(service.record_stock_movement("IT-1", inv.TX_SOLD, 2)))
        assert movement.financial_amount == 0
        assert movement.payload["unit_price"] == 0

    def test_oversold_is_kept(self):
        service, _ = _service()
        item_id = _run(_stock_bar(service, opening_stock=1))
        _run(service.record_stock_movement(item_id, inv.TX_STOCK_CONSUMED, 3))
        (entry,) = _run(service.catalog())
        assert entry.stock_level == -2
        assert entry.oversold

    def test_restock(self):
        service, _ = _service()
        item_id = _run(_stock_bar(service, opening_stock=0))
        _run(service.record_stock_movement(item_id, inv.TX_STOCK_RESTOCK, 12))
        assert _run(service.catalog())[0].stock_level == 12

    @pytest.mark.parametrize("tx_type, quantity, field", [
        ("stolen", 1, "transaction_type"),
        (inv.TX_SOLD, 0, "quantity"),
    ])
    def test_bad_movement(self, tx_type, quantity, field):
        service, _ = _service()
        item_id = _run(_stock_bar(service))
        with pytest.raises(ValidationError) as exc:
            _run(service.record_stock_movement(item_id, tx_type, quantity))
        assert exc.value.field == field

    def test_unknown_item(self):
        service, _ = _service()
        with pytest.raises(ValidationError, match="not found"):
            _run(service.record_stock_movement("nope", inv.TX_SOLD, 1))


class TestFailures:
    def test_expired_session(self):
        service, log = _service(valid=False)
        with pytest.raises(SessionExpiredError):
            _run(service.create_category("Bar"))
        assert log.all() == []

    def test_unreachable_store(self):
        service, _ = _service(UnreachableLog)
        with pytest.raises(TransientFetchError):
            _run(service.catalog())
