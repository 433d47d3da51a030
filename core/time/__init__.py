"""
Front Desk Core Time: Public API
==================================
Explicit clock protocol and stay-window helpers.
Doctrine: NO datetime.now() in derivation logic.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    business_now,
    business_today,
)
from core.time.temporal import (
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
    StayWindow,
    nights_between,
    parse_clock_time,
    parse_date,
    parse_instant,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "business_now",
    "business_today",
    "DEFAULT_CHECK_IN_TIME",
    "DEFAULT_CHECK_OUT_TIME",
    "StayWindow",
    "nights_between",
    "parse_clock_time",
    "parse_date",
    "parse_instant",
]
