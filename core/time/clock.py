"""
Front Desk Core Time: Explicit Clock Protocol
===============================================
Doctrine: NO datetime.now() inside derivation logic.
Derivations receive "now" as an argument. The service layer and the
refresh poller read it from an injected Clock.

The hotel operates on business dates (a room is occupied "today"),
so the clock also answers today() in the configured business zone.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock: real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock: returns a fixed timestamp until advanced.

    Usage:
        clock = FixedClock(datetime(2024, 3, 10, 9, tzinfo=timezone.utc))
        clock.advance(days=2)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, seconds: float = 0, *, days: int = 0) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(days=days, seconds=seconds)

    def set(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt


# ══════════════════════════════════════════════════════════════
# BUSINESS DATE HELPERS
# ══════════════════════════════════════════════════════════════

def business_now(now: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert an aware instant into the business time zone."""
    if now.tzinfo is None:
        raise ValueError("business_now requires timezone-aware datetime.")
    return now.astimezone(ZoneInfo(tz_name or "UTC"))


def business_today(now: datetime, tz_name: Optional[str] = None) -> date:
    """The hotel's calendar date at instant `now`."""
    return business_now(now, tz_name).date()
