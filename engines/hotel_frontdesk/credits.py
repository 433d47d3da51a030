"""
Front Desk Engine: Interrupted-Stay Credits
=============================================
A credit stays open while it has money left, may be resumed, and
nothing has consumed it yet. Consumption is by reference only:
a resumed booking segment (meta.source_credit_id) or a refund
(source_credit_id) naming the credit closes it. The credit record
itself is never rewritten.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from engines.hotel_frontdesk.records import (
    Booking,
    ClassifiedRecord,
    InterruptedStayCredit,
    Refund,
)
from engines.inventory.config_resolver import latest_per_lineage


def consumed_credit_ids(records: Iterable[ClassifiedRecord]) -> set:
    consumed = set()
    for record in records:
        if isinstance(record, Booking) and record.source_credit_id:
            consumed.add(record.source_credit_id)
        elif isinstance(record, Refund) and record.source_credit_id:
            consumed.add(record.source_credit_id)
    return consumed


def credit_is_unresolved(credit: InterruptedStayCredit, consumed: set) -> bool:
    return (
        not credit.closed
        and credit.id not in consumed
        and credit.lineage_key not in consumed
    )


def credit_is_open(credit: InterruptedStayCredit, consumed: set) -> bool:
    """Awaiting resumption: unresolved, resumable and with money left."""
    return (
        credit_is_unresolved(credit, consumed)
        and credit.can_resume
        and credit.credit_remaining > 0
    )


def current_credits(records: Sequence[ClassifiedRecord]) -> List[InterruptedStayCredit]:
    """Latest version of every credit."""
    credits = [r for r in records if isinstance(r, InterruptedStayCredit)]
    return sorted(latest_per_lineage(credits).values(), key=lambda c: c.id)


def open_credits(records: Sequence[ClassifiedRecord]) -> List[InterruptedStayCredit]:
    consumed = consumed_credit_ids(records)
    return [c for c in current_credits(records) if credit_is_open(c, consumed)]
