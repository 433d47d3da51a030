"""
Front Desk Inventory Engine: Versioned Config Resolver
========================================================
Resolves the current value of entities stored as version chains.

Algorithm:
    group by lineage root (the record's own id for first versions)
    winner = greatest version_no
    tie    -> greatest created_at
    tie    -> greatest record id

Exactly one winner per group, independent of input order.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, TypeVar

from engines.hotel_frontdesk.records import ClassifiedRecord, ConfigChange

R = TypeVar("R", bound=ClassifiedRecord)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _rank(record: ClassifiedRecord) -> Tuple[int, datetime, str]:
    return (record.version_no, record.created_at or _EPOCH, record.id)


def latest_per_lineage(records: Iterable[R]) -> Dict[str, R]:
    """Latest version of every lineage, keyed by lineage root id."""
    winners: Dict[str, R] = {}
    for record in records:
        key = record.lineage_key
        current = winners.get(key)
        if current is None or _rank(record) > _rank(current):
            winners[key] = record
    return winners


def resolve_current(
    records: Iterable[ClassifiedRecord],
    config_type: Optional[str] = None,
) -> List[ConfigChange]:
    """
    Current version of every configuration entity.

    Only approved, non-deleted versions compete. Result is sorted by
    name so callers get a stable listing.
    """
    candidates = [
        r for r in records
        if isinstance(r, ConfigChange)
        and r.is_approved
        and not r.event.is_deleted
        and (config_type is None or r.config_type == config_type)
    ]
    winners = latest_per_lineage(candidates)
    return sorted(winners.values(), key=lambda r: (r.config_type, r.name.lower(), r.lineage_key))
