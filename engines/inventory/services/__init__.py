"""
Front Desk Inventory Engine: Service
======================================
Storekeeper configuration and stock movements.

Configuration is versioned: creating appends version 1, renaming
appends the next version of the same lineage. Creating an item also
records its opening stock; if that second write fails the item still
exists and PartialWriteFailure says so.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, List, Mapping, Optional

from core.config.frontdesk import FrontDeskSettings
from core.event_store.contracts import EventLog, OperationalEvent, RecordStatus, SessionContext
from core.event_store.persistence.errors import (
    RecordNotFoundError,
    StoreConstraintViolation,
    StoreUnavailableError,
)
from core.time.clock import Clock
from engines.hotel_frontdesk.classifier import classify_records
from engines.hotel_frontdesk.errors import (
    FrontDeskError,
    PartialWriteFailure,
    SessionExpiredError,
    StoreConstraintError,
    TransientFetchError,
    ValidationError,
)
from engines.hotel_frontdesk.records import ConfigChange
from engines.inventory import events as inv
from engines.inventory.config_resolver import resolve_current
from engines.inventory.stock_engine import CatalogItem, build_catalog, unit_price_of

logger = logging.getLogger("frontdesk.inventory")


def _names(current: List[ConfigChange], config_type: str) -> set:
    return {c.name.lower() for c in current if c.config_type == config_type}


class InventoryService:
    def __init__(
        self,
        *,
        event_log: EventLog,
        session: SessionContext,
        clock: Clock,
        settings: Optional[FrontDeskSettings] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._event_log = event_log
        self._session   = session
        self._clock     = clock
        self._settings  = settings or FrontDeskSettings()
        self._new_id    = id_factory or (lambda: str(uuid.uuid4()))

    # ── plumbing ──────────────────────────────────────────────

    async def _current(self) -> List[ConfigChange]:
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        try:
            events = await self._event_log.query(
                self._settings.inventory_entity_kind, statuses=(RecordStatus.APPROVED,),
            )
        except StoreUnavailableError as exc:
            raise TransientFetchError("inventory records", exc.detail) from exc
        return resolve_current(classify_records(events).records)

    async def _append(self, payload: Mapping[str, Any], *, financial_amount: int = 0) -> OperationalEvent:
        event = OperationalEvent(
            id=self._new_id(),
            entity_kind=self._settings.inventory_entity_kind,
            payload=payload,
            status=RecordStatus.APPROVED,
            submitted_by=self._session.staff_id,
            financial_amount=financial_amount,
        )
        try:
            return await self._event_log.insert(event)
        except StoreConstraintViolation as exc:
            raise StoreConstraintError(exc.detail) from exc
        except StoreUnavailableError as exc:
            raise TransientFetchError("event log", exc.detail) from exc

    # ── configuration ─────────────────────────────────────────

    async def create_category(self, category_name: str, assigned_to: Optional[str] = None) -> str:
        if not category_name or not category_name.strip():
            raise ValidationError("category_name", "must be non-empty.")
        current = await self._current()
        if category_name.strip().lower() in _names(current, inv.CONFIG_CATEGORY):
            raise ValidationError("category_name", f"category '{category_name}' already exists.")
        created = await self._append(inv.build_category_payload(
            category_name=category_name.strip(), assigned_to=assigned_to,
        ))
        logger.info(f"Category {created.id} created: {category_name}")
        return created.id

    async def create_collection(self, category: str, collection_name: str) -> str:
        if not collection_name or not collection_name.strip():
            raise ValidationError("collection_name", "must be non-empty.")
        current = await self._current()
        if category.lower() not in _names(current, inv.CONFIG_CATEGORY):
            raise ValidationError("category", f"category '{category}' not found.")
        taken = {
            c.name.lower() for c in current
            if c.config_type == inv.CONFIG_COLLECTION
            and str(c.attributes.get("category") or "").lower() == category.lower()
        }
        if collection_name.strip().lower() in taken:
            raise ValidationError(
                "collection_name", f"collection '{collection_name}' already exists in {category}."
            )
        created = await self._append(inv.build_collection_payload(
            category=category, collection_name=collection_name.strip(),
        ))
        logger.info(f"Collection {created.id} created: {category}/{collection_name}")
        return created.id

    async def create_item(
        self,
        *,
        category: str,
        collection_name: str,
        item_name: str,
        unit: str,
        unit_price: int,
        opening_stock: int = 0,
    ) -> str:
        """Item version 1, then its opening-stock movement."""
        if not item_name or not item_name.strip():
            raise ValidationError("item_name", "must be non-empty.")
        if not isinstance(unit_price, int) or unit_price < 0:
            raise ValidationError("unit_price", "must be a non-negative integer.")
        if not isinstance(opening_stock, int) or opening_stock < 0:
            raise ValidationError("opening_stock", "must be a non-negative integer.")
        current = await self._current()
        collections = {
            (str(c.attributes.get("category") or "").lower(), c.name.lower())
            for c in current if c.config_type == inv.CONFIG_COLLECTION
        }
        if (category.lower(), collection_name.lower()) not in collections:
            raise ValidationError(
                "collection_name", f"collection '{category}/{collection_name}' not found."
            )
        if item_name.strip().lower() in _names(current, inv.CONFIG_ITEM):
            raise ValidationError("item_name", f"item '{item_name}' already exists.")

        item = await self._append(inv.build_item_payload(
            category=category,
            collection_name=collection_name,
            item_name=item_name.strip(),
            unit=unit,
            unit_price=unit_price,
        ))
        try:
            await self._append(inv.build_stock_transaction_payload(
                item_id=item.id,
                item_name=item_name.strip(),
                transaction_type=inv.TX_OPENING_STOCK,
                quantity=opening_stock,
                unit_price=unit_price,
                event_date=self._clock.now_utc(),
                note="Opening stock",
            ))
        except FrontDeskError as exc:
            logger.error(f"Item {item.id} created but opening stock failed: {exc}")
            raise PartialWriteFailure(item.id, "opening stock", exc) from exc
        logger.info(f"Item {item.id} created: {item_name} (opening stock {opening_stock})")
        return item.id

    async def rename_item(self, item_id: str, new_name: str) -> str:
        """Append the next version of the item under a new name."""
        if not new_name or not new_name.strip():
            raise ValidationError("item_name", "must be non-empty.")
        current = await self._current()
        item = next(
            (c for c in current
             if c.config_type == inv.CONFIG_ITEM and item_id in (c.id, c.lineage_key)),
            None,
        )
        if item is None:
            raise ValidationError("item_id", f"item '{item_id}' not found.")
        if new_name.strip().lower() in _names(current, inv.CONFIG_ITEM) - {item.name.lower()}:
            raise ValidationError("item_name", f"item '{new_name}' already exists.")

        payload = dict(item.event.payload)
        payload["item_name"] = new_name.strip()
        try:
            new_id = await self._event_log.edit_with_new_version(item.id, payload)
        except StoreConstraintViolation as exc:
            raise StoreConstraintError(exc.detail) from exc
        except StoreUnavailableError as exc:
            raise TransientFetchError("event log", exc.detail) from exc
        except RecordNotFoundError as exc:
            raise ValidationError("item_id", str(exc)) from exc
        logger.info(f"Item {item.lineage_key} renamed to {new_name} (version {new_id})")
        return new_id

    # ── stock ─────────────────────────────────────────────────

    async def record_stock_movement(
        self,
        item_id: str,
        transaction_type: str,
        quantity: int,
        *,
        department: str = "storekeeper",
        note: str = "",
    ) -> str:
        if transaction_type not in inv.VALID_TRANSACTION_TYPES:
            raise ValidationError(
                "transaction_type", f"must be one of {sorted(inv.VALID_TRANSACTION_TYPES)}."
            )
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity", "must be a positive integer.")
        current = await self._current()
        item = next(
            (c for c in current
             if c.config_type == inv.CONFIG_ITEM and item_id in (c.id, c.lineage_key)),
            None,
        )
        if item is None:
            raise ValidationError("item_id", f"item '{item_id}' not found.")
        unit_price = unit_price_of(item)
        created = await self._append(
            inv.build_stock_transaction_payload(
                item_id=item.lineage_key,
                item_name=item.name,
                transaction_type=transaction_type,
                quantity=quantity,
                department=department,
                unit_price=unit_price,
                event_date=self._clock.now_utc(),
                note=note,
            ),
            financial_amount=unit_price * quantity if transaction_type == inv.TX_SOLD else 0,
        )
        return created.id

    async def catalog(self) -> List[CatalogItem]:
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        try:
            events = await self._event_log.query(
                self._settings.inventory_entity_kind, statuses=(RecordStatus.APPROVED,),
            )
        except StoreUnavailableError as exc:
            raise TransientFetchError("inventory records", exc.detail) from exc
        return build_catalog(classify_records(events).records)
