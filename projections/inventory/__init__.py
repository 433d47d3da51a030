"""
Front Desk Projections: Inventory Read Model
==============================================
Storekeeper catalog view built from the same snapshot as the desk.

Built from:
- inventory config records   (current category/collection/item versions)
- stock_transaction records  (net stock per item)
- the secondary stock lookup (when it answered; see snapshot)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from engines.hotel_frontdesk.snapshot import FrontDeskSnapshot
from engines.inventory.stock_engine import CatalogItem, build_catalog


class InventoryReadModel:
    """
    Catalog of active items with their stock levels.

    Rebuilt whole from each snapshot.
    """

    projection_name = "inventory_read_model"

    def __init__(self) -> None:
        self._items: List[CatalogItem] = []
        self.degraded = False

    def apply_snapshot(self, snapshot: FrontDeskSnapshot) -> None:
        self._items = build_catalog(snapshot.records, snapshot.stock_levels)
        self.degraded = snapshot.stock_levels_degraded

    @property
    def items(self) -> List[CatalogItem]:
        return list(self._items)

    def get_item(self, item_id: str) -> Optional[CatalogItem]:
        return next((i for i in self._items if i.item_id == item_id), None)

    def by_category(self) -> Dict[str, List[CatalogItem]]:
        grouped: Dict[str, List[CatalogItem]] = {}
        for item in self._items:
            grouped.setdefault(item.category, []).append(item)
        return grouped

    def oversold(self) -> List[CatalogItem]:
        return [i for i in self._items if i.oversold]

    def total_value(self) -> int:
        return sum(max(i.stock_level, 0) * i.unit_price for i in self._items)

    def truncate(self) -> None:
        self._items = []
        self.degraded = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self._items],
            "degraded": self.degraded,
            "total_value": self.total_value(),
        }
