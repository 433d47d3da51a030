"""
Front Desk Core Time: Stay Windows
====================================
Pure functions for stay interval logic.
All functions take explicit arguments. No hidden clock access.

Stay windows are half-open: [start, end). A guest leaving at the
exact instant the next guest arrives does not collide with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

DEFAULT_CHECK_IN_TIME = time(14, 0)
DEFAULT_CHECK_OUT_TIME = time(11, 0)

DateLike = Union[date, datetime, str]


# ══════════════════════════════════════════════════════════════
# PARSING
# ══════════════════════════════════════════════════════════════

def parse_date(value: DateLike) -> date:
    """
    Parse a business date.

    Accepts date, datetime (date part is kept) or ISO strings
    ("2024-03-10" or "2024-03-10T09:30:00Z").
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Cannot parse date from {value!r}.")
    return date.fromisoformat(value.strip()[:10])


def parse_instant(value: DateLike, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse an aware instant. Naive values are placed in `tz` (UTC default).
    A bare date becomes midnight of that date.
    """
    tz = tz or timezone.utc
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    if isinstance(value, date):
        return datetime.combine(value, time(0, 0), tzinfo=tz)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Cannot parse instant from {value!r}.")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def parse_clock_time(value: Optional[str], default: time) -> time:
    """Parse "HH:MM" (or "HH:MM:SS"); fall back to `default`."""
    if not value:
        return default
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        return default


# ══════════════════════════════════════════════════════════════
# STAY WINDOW: half-open interval [start, end)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StayWindow:
    """
    A half-open time interval [start, end).

    Invariant: start < end (enforced at construction).
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("StayWindow bounds must be timezone-aware.")
        if self.start >= self.end:
            raise ValueError(
                f"StayWindow start ({self.start.isoformat()}) must be "
                f"before end ({self.end.isoformat()})."
            )

    @classmethod
    def from_dates(
        cls,
        check_in: DateLike,
        check_out: DateLike,
        *,
        check_in_time: time = DEFAULT_CHECK_IN_TIME,
        check_out_time: time = DEFAULT_CHECK_OUT_TIME,
        tz: Optional[tzinfo] = None,
    ) -> "StayWindow":
        """
        Build a window from stay values.

        Date-only values are pinned to the hotel's check-in / check-out
        times; values that already carry a time of day are kept as is.
        """
        return cls(
            start=_pin(check_in, check_in_time, tz),
            end=_pin(check_out, check_out_time, tz),
        )

    def overlaps(self, other: "StayWindow") -> bool:
        """Boundary-exclusive overlap: s1 < e2 and e1 > s2."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _pin(value: DateLike, default_time: time, tz: Optional[tzinfo]) -> datetime:
    tz = tz or timezone.utc
    if isinstance(value, str):
        text = value.strip()
        value = parse_instant(text, tz) if "T" in text else parse_date(text)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    return datetime.combine(value, default_time, tzinfo=tz)


def nights_between(check_in: DateLike, check_out: DateLike) -> int:
    """Calendar nights between two stay dates (never negative)."""
    return max(0, (parse_date(check_out) - parse_date(check_in)).days)
