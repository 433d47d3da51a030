"""
Front Desk Core Config: Engine Settings
=========================================
Operational knobs for the occupancy & ledger engine.

Values come from the Django settings container (FRONTDESK dict) when
Django is configured, and from the defaults below otherwise, so pure
derivation code and its tests never need a settings module.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import time
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.time.temporal import (
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
    parse_clock_time,
)


# ══════════════════════════════════════════════════════════════
# SETTINGS VALUE OBJECT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FrontDeskSettings:
    """
    Engine configuration.

    poll_interval_seconds:  Re-derivation period. Displayed state is
                            stale by at most this much.
    default_check_in_time:  Time of day a date-only check-in starts.
    default_check_out_time: Time of day a date-only check-out ends.
    business_time_zone:     IANA zone the hotel's calendar runs in.
    entity_kind:            Event-log kind for front-desk records.
    inventory_entity_kind:  Event-log kind for inventory records.
    """

    poll_interval_seconds: int = 60
    default_check_in_time: time = DEFAULT_CHECK_IN_TIME
    default_check_out_time: time = DEFAULT_CHECK_OUT_TIME
    business_time_zone: str = "UTC"
    entity_kind: str = "front_desk"
    inventory_entity_kind: str = "storekeeper"

    def __post_init__(self) -> None:
        if not isinstance(self.poll_interval_seconds, int) or self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be a positive integer.")
        if not isinstance(self.default_check_in_time, time):
            raise ValueError("default_check_in_time must be a time.")
        if not isinstance(self.default_check_out_time, time):
            raise ValueError("default_check_out_time must be a time.")
        try:
            ZoneInfo(self.business_time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"business_time_zone '{self.business_time_zone}' is not a known zone."
            ) from exc
        if not self.entity_kind or not self.inventory_entity_kind:
            raise ValueError("entity kinds must be non-empty strings.")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_time_zone)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FrontDeskSettings":
        """Build from a FRONTDESK-style dict (UPPER_CASE keys)."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = str(key).lower()
            if name not in known:
                continue
            if name == "default_check_in_time":
                value = parse_clock_time(value, DEFAULT_CHECK_IN_TIME)
            elif name == "default_check_out_time":
                value = parse_clock_time(value, DEFAULT_CHECK_OUT_TIME)
            elif name == "poll_interval_seconds":
                value = int(value)
            kwargs[name] = value
        return cls(**kwargs)

    def with_overrides(self, **changes: Any) -> "FrontDeskSettings":
        return replace(self, **changes)


# ══════════════════════════════════════════════════════════════
# LOADER
# ══════════════════════════════════════════════════════════════

def load_frontdesk_settings(overrides: Optional[Mapping[str, Any]] = None) -> FrontDeskSettings:
    """
    Read FRONTDESK from Django settings if configured, then apply
    `overrides`. Unknown keys are ignored.
    """
    data: Dict[str, Any] = {}

    from django.conf import settings as django_settings

    if django_settings.configured:
        data.update(getattr(django_settings, "FRONTDESK", {}) or {})
    if overrides:
        data.update(overrides)
    return FrontDeskSettings.from_mapping(data)
