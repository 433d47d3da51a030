"""
Front Desk Event Store: In-Memory Collaborators
=================================================
Process-local implementations of the event-log, room-directory and
session contracts. Used by tests and local runs.

Same rules as the Django adapter: inserts only, edits append a new
version, (lineage_root_id, version_no) is unique.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from core.event_store.contracts import (
    EventPredicate,
    OperationalEvent,
    RecordStatus,
    RoomMaster,
)
from core.event_store.persistence.errors import (
    InvalidTransitionError,
    RecordNotFoundError,
    StoreConstraintViolation,
)
from core.time.clock import Clock, SystemClock


class InMemoryEventLog:
    """Append-only operational log held in a dict keyed by record id."""

    def __init__(
        self,
        events: Iterable[OperationalEvent] = (),
        *,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._clock = clock or SystemClock()
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._events: Dict[str, OperationalEvent] = {}
        for event in events:
            self._store(event, operation="seed")

    # ── reads ─────────────────────────────────────────────────

    async def query(
        self,
        entity_kind: str,
        *,
        predicate: Optional[EventPredicate] = None,
        statuses: Optional[Iterable[RecordStatus]] = None,
        exclude_deleted: bool = True,
        order: str = "created_at",
    ) -> List[OperationalEvent]:
        allowed = set(statuses) if statuses is not None else None
        rows = [
            e for e in self._events.values()
            if e.entity_kind == entity_kind
            and (allowed is None or e.status in allowed)
            and not (exclude_deleted and e.is_deleted)
            and (predicate is None or predicate(e))
        ]
        descending = order.startswith("-")
        rows.sort(
            key=lambda e: (e.created_at, e.id),
            reverse=descending,
        )
        return rows

    def get(self, record_id: str) -> OperationalEvent:
        try:
            return self._events[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    def all(self) -> List[OperationalEvent]:
        return list(self._events.values())

    # ── writes ────────────────────────────────────────────────

    async def insert(self, event: OperationalEvent) -> OperationalEvent:
        return self._store(event, operation="insert")

    async def approve(self, record_id: str) -> OperationalEvent:
        current = self.get(record_id)
        if current.status is not RecordStatus.PENDING or current.is_deleted:
            raise InvalidTransitionError(record_id, "not pending.")
        approved = current.with_changes(status=RecordStatus.APPROVED)
        self._events[record_id] = approved
        return approved

    async def soft_delete(self, record_id: str) -> None:
        current = self.get(record_id)
        if current.is_deleted:
            raise InvalidTransitionError(record_id, "already deleted.")
        self._events[record_id] = current.with_changes(
            deleted_at=self._clock.now_utc()
        )

    async def edit_with_new_version(
        self, previous_id: str, new_payload: Mapping[str, Any]
    ) -> str:
        previous = self.get(previous_id)
        new_event = OperationalEvent(
            id=self._id_factory(),
            entity_kind=previous.entity_kind,
            payload=dict(new_payload) if new_payload is not None else dict(previous.payload),
            status=RecordStatus.APPROVED,
            lineage_root_id=previous.lineage_key,
            version_no=previous.version_no + 1,
            submitted_by=previous.submitted_by,
            financial_amount=previous.financial_amount,
        )
        stored = self._store(new_event, operation="edit_with_new_version")
        return stored.id

    async def hard_delete(self, record_id: str) -> int:
        """Remove the record and every record that depends on it."""
        self.get(record_id)
        doomed = {record_id}
        for event in self._events.values():
            if event.lineage_root_id == record_id:
                doomed.add(event.id)
            elif str(event.payload.get("booking_id") or "") == record_id:
                doomed.add(event.id)
            elif str(event.payload.get("original_id") or "") == record_id:
                doomed.add(event.id)
        for doomed_id in doomed:
            del self._events[doomed_id]
        return len(doomed)

    # ── internals ─────────────────────────────────────────────

    def _store(self, event: OperationalEvent, *, operation: str) -> OperationalEvent:
        if event.id in self._events:
            raise StoreConstraintViolation(operation, f"duplicate id {event.id}.")
        if event.lineage_root_id is not None:
            for existing in self._events.values():
                if (
                    existing.lineage_root_id == event.lineage_root_id
                    and existing.version_no == event.version_no
                ):
                    raise StoreConstraintViolation(
                        operation,
                        f"version {event.version_no} already exists in "
                        f"lineage {event.lineage_root_id}.",
                    )
        if event.created_at is None:
            event = event.with_changes(created_at=self._clock.now_utc())
        self._events[event.id] = event
        return event


class InMemoryRoomDirectory:
    def __init__(self, rooms: Sequence[RoomMaster] = ()):
        self._rooms = list(rooms)

    async def list_rooms(self) -> Sequence[RoomMaster]:
        return list(self._rooms)


class StaticSession:
    """Session whose validity is a plain flag."""

    def __init__(
        self,
        *,
        role: str = "staff",
        staff_id: str = "staff-1",
        user_id: str = "user-1",
        valid: bool = True,
    ):
        self.role = role
        self.staff_id = staff_id
        self.user_id = user_id
        self.valid = valid

    async def is_session_valid(self) -> bool:
        return self.valid
