"""
Front Desk Inventory Engine: Record Types and Payload Builders
================================================================
Engine: inventory
Scope:  Storekeeper configuration (categories, collections, items)
        kept as version chains, and stock movements.

Configuration records are never edited in place: a change appends a
new version whose lineage root is the first version's id.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional


# ══════════════════════════════════════════════════════════════
# RECORD TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CONFIG_CATEGORY   = "config_category"
CONFIG_COLLECTION = "config_collection"
CONFIG_ITEM       = "config_item"
STOCK_TRANSACTION = "stock_transaction"
LEGACY_OPENING_STOCK = "opening_stock"

CONFIG_RECORD_TYPES = (CONFIG_CATEGORY, CONFIG_COLLECTION, CONFIG_ITEM)

# Short kind name -> record type.
CONFIG_KINDS = {
    "category":   CONFIG_CATEGORY,
    "collection": CONFIG_COLLECTION,
    "item":       CONFIG_ITEM,
}

# Payload field holding the display name, per record type.
CONFIG_NAME_FIELDS = {
    CONFIG_CATEGORY:   "category_name",
    CONFIG_COLLECTION: "collection_name",
    CONFIG_ITEM:       "item_name",
}


# ══════════════════════════════════════════════════════════════
# STOCK TRANSACTION TYPES
# ══════════════════════════════════════════════════════════════

TX_OPENING_STOCK  = "opening_stock"
TX_STOCK_RESTOCK  = "stock_restock"
TX_STOCK_CONSUMED = "stock_consumed"
TX_SOLD           = "sold"

INBOUND_TRANSACTIONS  = frozenset({TX_OPENING_STOCK, TX_STOCK_RESTOCK})
OUTBOUND_TRANSACTIONS = frozenset({TX_STOCK_CONSUMED, TX_SOLD})
VALID_TRANSACTION_TYPES = INBOUND_TRANSACTIONS | OUTBOUND_TRANSACTIONS


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def build_category_payload(*, category_name: str, assigned_to: Optional[str] = None) -> dict:
    return {
        "type":          CONFIG_CATEGORY,
        "category_name": category_name,
        "assigned_to":   assigned_to,
        "active":        True,
    }


def build_collection_payload(*, category: str, collection_name: str) -> dict:
    return {
        "type":            CONFIG_COLLECTION,
        "category":        category,
        "collection_name": collection_name,
        "active":          True,
    }


def build_item_payload(
    *, category: str, collection_name: str, item_name: str, unit: str, unit_price: int,
) -> dict:
    return {
        "type":            CONFIG_ITEM,
        "category":        category,
        "collection_name": collection_name,
        "item_name":       item_name,
        "unit":            unit,
        "unit_price":      unit_price,
        "active":          True,
    }


def build_stock_transaction_payload(
    *,
    item_id: str,
    item_name: str,
    transaction_type: str,
    quantity: int,
    department: str = "storekeeper",
    unit_price: int = 0,
    event_date: Any = None,
    note: str = "",
) -> dict:
    inbound = transaction_type in INBOUND_TRANSACTIONS
    if isinstance(event_date, (date, datetime)):
        event_date = event_date.isoformat()
    return {
        "type":             STOCK_TRANSACTION,
        "transaction_type": transaction_type,
        "item_id":          item_id,
        "item_name":        item_name,
        "quantity_in":      quantity if inbound else 0,
        "quantity_out":     0 if inbound else quantity,
        "department":       department,
        "unit_price":       unit_price,
        "event_date":       event_date,
        "note":             note,
    }
