"""
Front Desk Inventory Engine: Stock Levels and Catalog
=======================================================
Stock on hand is derived, never stored:

    level(item) = sum(quantity_in) - sum(quantity_out)

over approved, non-deleted stock transactions for the item.

RULES (NON-NEGOTIABLE):
- All arithmetic is integer
- opening_stock / stock_restock move stock in; stock_consumed / sold move it out
- Negative levels are kept (oversold) but flagged on the catalog entry
- Items are keyed by their config lineage root; legacy opening-stock
  rows keyed by item name are folded into the same entry
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from engines.hotel_frontdesk.records import ClassifiedRecord, ConfigChange, StockTransaction
from engines.inventory.config_resolver import resolve_current
from engines.inventory.events import CONFIG_CATEGORY, CONFIG_COLLECTION, CONFIG_ITEM


# ══════════════════════════════════════════════════════════════
# STOCK LEVELS
# ══════════════════════════════════════════════════════════════

def compute_stock_levels(records: Iterable[ClassifiedRecord]) -> Dict[str, int]:
    """Net quantity per item key from approved stock transactions."""
    levels: Dict[str, int] = {}
    for record in records:
        if not isinstance(record, StockTransaction):
            continue
        if not record.is_approved or record.event.is_deleted:
            continue
        levels[record.item_key] = levels.get(record.item_key, 0) + record.net_quantity
    return levels


# ══════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CatalogItem:
    item_id: str
    item_name: str
    category: str
    collection_name: str
    unit: str
    unit_price: int
    stock_level: int
    version_no: int = 1

    @property
    def oversold(self) -> bool:
        return self.stock_level < 0

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "category": self.category,
            "collection_name": self.collection_name,
            "unit": self.unit,
            "unit_price": self.unit_price,
            "stock_level": self.stock_level,
            "version_no": self.version_no,
            "oversold": self.oversold,
        }


def _int(value) -> int:
    try:
        return int(round(float(value or 0)))
    except (TypeError, ValueError, OverflowError):
        return 0


def unit_price_of(item: ConfigChange) -> int:
    return _int(item.attributes.get("unit_price"))


def _is_active(change: ConfigChange) -> bool:
    return change.attributes.get("active", True) is not False


def build_catalog(
    records: Iterable[ClassifiedRecord],
    stock_levels: Optional[Mapping[str, int]] = None,
) -> List[CatalogItem]:
    """
    Current active items under current active categories and collections.

    An item whose category or collection is missing or inactive is left
    out. stock_levels defaults to levels computed from `records`.
    """
    records = list(records)
    levels = dict(stock_levels) if stock_levels is not None else compute_stock_levels(records)
    current = resolve_current(records)

    categories = {
        c.name.lower() for c in current
        if c.config_type == CONFIG_CATEGORY and _is_active(c)
    }
    collections = {
        (str(c.attributes.get("category") or "").lower(), c.name.lower())
        for c in current
        if c.config_type == CONFIG_COLLECTION and _is_active(c)
    }

    catalog: List[CatalogItem] = []
    for item in current:
        if item.config_type != CONFIG_ITEM or not _is_active(item):
            continue
        category = str(item.attributes.get("category") or "")
        collection = str(item.attributes.get("collection_name") or "")
        if category.lower() not in categories:
            continue
        if (category.lower(), collection.lower()) not in collections:
            continue
        level = levels.get(item.lineage_key, 0)
        if item.name != item.lineage_key:
            level += levels.get(item.name, 0)
        catalog.append(CatalogItem(
            item_id=item.lineage_key,
            item_name=item.name,
            category=category,
            collection_name=collection,
            unit=str(item.attributes.get("unit") or ""),
            unit_price=unit_price_of(item),
            stock_level=level,
            version_no=item.version_no,
        ))
    catalog.sort(key=lambda c: (c.category.lower(), c.collection_name.lower(), c.item_name.lower()))
    return catalog
