"""
Front Desk Projections: Revenue Reducer
=========================================
Time-bucketed revenue over checkout records.

Built from:
- checkout_record   (final payment, bucketed by business date and month)
- past lineages     (stay duration statistics)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, Optional

from core.time.temporal import nights_between
from engines.hotel_frontdesk.lineage import BookingLineage
from engines.hotel_frontdesk.records import Checkout


@dataclass(frozen=True)
class DailyRevenue:
    day: str
    revenue: int = 0
    count: int = 0


@dataclass(frozen=True)
class RevenueSummary:
    daily: tuple = ()
    monthly: Dict[str, int] = field(default_factory=dict)
    total_revenue: int = 0
    average_stay_nights: float = 0.0
    total_checkouts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily": [
                {"date": d.day, "revenue": d.revenue, "count": d.count} for d in self.daily
            ],
            "monthly": [
                {"month": month, "revenue": revenue}
                for month, revenue in sorted(self.monthly.items())
            ],
            "total_revenue": self.total_revenue,
            "average_stay_nights": self.average_stay_nights,
            "total_checkouts": self.total_checkouts,
        }


def _business_day(value, tz: Optional[tzinfo]) -> str:
    if isinstance(value, datetime):
        return (value.astimezone(tz) if tz else value).date().isoformat()
    return value.isoformat()


def summarize_revenue(
    checkouts: Iterable[Checkout],
    past: Iterable[BookingLineage],
    *,
    tz: Optional[tzinfo] = None,
) -> RevenueSummary:
    daily: Dict[str, Dict[str, int]] = {}
    monthly: Dict[str, int] = {}
    total = 0
    count = 0
    for checkout in checkouts:
        count += 1
        if checkout.checkout_date is None:
            continue
        day = _business_day(checkout.checkout_date, tz)
        bucket = daily.setdefault(day, {"revenue": 0, "count": 0})
        bucket["revenue"] += checkout.final_payment
        bucket["count"] += 1
        monthly[day[:7]] = monthly.get(day[:7], 0) + checkout.final_payment
        total += checkout.final_payment

    durations = []
    for lineage in past:
        nights = nights_between(lineage.root.check_in, lineage.effective_segment().check_out)
        if nights > 0:
            durations.append(nights)
    average = sum(durations) / len(durations) if durations else 0.0

    return RevenueSummary(
        daily=tuple(
            DailyRevenue(day, data["revenue"], data["count"]) for day, data in sorted(daily.items())
        ),
        monthly=monthly,
        total_revenue=total,
        average_stay_nights=average,
        total_checkouts=count,
    )
