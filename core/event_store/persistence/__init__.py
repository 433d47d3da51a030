"""
Front Desk Event Store Persistence public API.

The Django adapters are imported from
core.event_store.persistence.repository directly so that the
in-memory collaborators stay importable without Django settings.
"""

from core.event_store.persistence.errors import (
    EventStoreError,
    InvalidTransitionError,
    RecordNotFoundError,
    StoreConstraintViolation,
    StoreUnavailableError,
)
from core.event_store.persistence.memory import (
    InMemoryEventLog,
    InMemoryRoomDirectory,
    StaticSession,
)

__all__ = [
    "EventStoreError",
    "InvalidTransitionError",
    "RecordNotFoundError",
    "StoreConstraintViolation",
    "StoreUnavailableError",
    "InMemoryEventLog",
    "InMemoryRoomDirectory",
    "StaticSession",
]
