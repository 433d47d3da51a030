"""
Front Desk Event Store: Django Repository
===========================================
ORM-backed implementations of the EventLog and RoomDirectory contracts.

The ORM is synchronous; every public method is a coroutine that runs
the ORM work in a worker thread via asgiref's sync_to_async.

Error mapping:
    IntegrityError -> StoreConstraintViolation
    DatabaseError  -> StoreUnavailableError
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from core.event_store.contracts import (
    EventPredicate,
    OperationalEvent,
    RecordStatus,
    RoomMaster,
)
from core.event_store.models import OperationalRecord, Room
from core.event_store.persistence.errors import (
    InvalidTransitionError,
    RecordNotFoundError,
    StoreConstraintViolation,
    StoreUnavailableError,
)

logger = logging.getLogger("frontdesk.event_store")

_ORDER_FIELDS = {"created_at", "-created_at"}


def record_to_event(row: OperationalRecord) -> OperationalEvent:
    return OperationalEvent(
        id=str(row.id),
        entity_kind=row.entity_kind,
        payload=dict(row.payload or {}),
        status=RecordStatus.parse(row.status),
        lineage_root_id=str(row.lineage_root_id) if row.lineage_root_id else None,
        version_no=row.version_no,
        submitted_by=row.submitted_by,
        financial_amount=int(row.financial_amount or 0),
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _as_uuid(record_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise RecordNotFoundError(record_id) from None


class DjangoEventLog:
    """EventLog backed by the OperationalRecord table."""

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
        events = await sync_to_async(self._query_sync)(
            entity_kind, statuses, exclude_deleted, order
        )
        if predicate is None:
            return events
        return [e for e in events if predicate(e)]

    def _query_sync(self, entity_kind, statuses, exclude_deleted, order):
        if order not in _ORDER_FIELDS:
            raise ValueError(f"order must be one of {sorted(_ORDER_FIELDS)}, got {order!r}.")
        qs = OperationalRecord.objects.filter(entity_kind=entity_kind)
        if statuses is not None:
            qs = qs.filter(status__in=[s.value for s in statuses])
        if exclude_deleted:
            qs = qs.filter(deleted_at__isnull=True)
        tie_break = "-id" if order.startswith("-") else "id"
        try:
            return [record_to_event(row) for row in qs.order_by(order, tie_break)]
        except DatabaseError as exc:
            raise StoreUnavailableError("query", str(exc)) from exc

    # ── writes ────────────────────────────────────────────────

    async def insert(self, event: OperationalEvent) -> OperationalEvent:
        return await sync_to_async(self._insert_sync)(event)

    def _insert_sync(self, event: OperationalEvent) -> OperationalEvent:
        fields = {
            "id": _as_uuid(event.id),
            "entity_kind": event.entity_kind,
            "payload": dict(event.payload),
            "status": event.status.value,
            "lineage_root_id": _as_uuid(event.lineage_root_id) if event.lineage_root_id else None,
            "version_no": event.version_no,
            "submitted_by": event.submitted_by,
            "financial_amount": event.financial_amount,
        }
        if event.created_at is not None:
            fields["created_at"] = event.created_at
        try:
            with transaction.atomic():
                row = OperationalRecord.objects.create(**fields)
        except IntegrityError as exc:
            raise StoreConstraintViolation("insert", str(exc)) from exc
        except DatabaseError as exc:
            raise StoreUnavailableError("insert", str(exc)) from exc
        return record_to_event(row)

    async def approve(self, record_id: str) -> OperationalEvent:
        return await sync_to_async(self._approve_sync)(record_id)

    def _approve_sync(self, record_id: str) -> OperationalEvent:
        pk = _as_uuid(record_id)
        try:
            updated = OperationalRecord.objects.filter(
                id=pk,
                status=RecordStatus.PENDING.value,
                deleted_at__isnull=True,
            ).update(status=RecordStatus.APPROVED.value)
            if not updated:
                if not OperationalRecord.objects.filter(id=pk).exists():
                    raise RecordNotFoundError(record_id)
                raise InvalidTransitionError(record_id, "not pending.")
            return record_to_event(OperationalRecord.objects.get(id=pk))
        except DatabaseError as exc:
            raise StoreUnavailableError("approve", str(exc)) from exc

    async def soft_delete(self, record_id: str) -> None:
        await sync_to_async(self._soft_delete_sync)(record_id)

    def _soft_delete_sync(self, record_id: str) -> None:
        pk = _as_uuid(record_id)
        try:
            updated = OperationalRecord.objects.filter(
                id=pk, deleted_at__isnull=True
            ).update(deleted_at=timezone.now())
            if not updated:
                if not OperationalRecord.objects.filter(id=pk).exists():
                    raise RecordNotFoundError(record_id)
                raise InvalidTransitionError(record_id, "already deleted.")
        except DatabaseError as exc:
            raise StoreUnavailableError("soft_delete", str(exc)) from exc

    async def edit_with_new_version(
        self, previous_id: str, new_payload: Mapping[str, Any]
    ) -> str:
        return await sync_to_async(self._edit_sync)(previous_id, new_payload)

    def _edit_sync(self, previous_id: str, new_payload: Mapping[str, Any]) -> str:
        pk = _as_uuid(previous_id)
        try:
            with transaction.atomic():
                try:
                    previous = OperationalRecord.objects.get(id=pk)
                except OperationalRecord.DoesNotExist:
                    raise RecordNotFoundError(previous_id) from None
                row = OperationalRecord.objects.create(
                    entity_kind=previous.entity_kind,
                    payload=dict(new_payload) if new_payload is not None else previous.payload,
                    status=RecordStatus.APPROVED.value,
                    lineage_root_id=previous.lineage_root_id or previous.id,
                    version_no=previous.version_no + 1,
                    submitted_by=previous.submitted_by,
                    financial_amount=previous.financial_amount,
                )
        except IntegrityError as exc:
            raise StoreConstraintViolation("edit_with_new_version", str(exc)) from exc
        except DatabaseError as exc:
            raise StoreUnavailableError("edit_with_new_version", str(exc)) from exc
        return str(row.id)

    async def hard_delete(self, record_id: str) -> int:
        """Privileged wipe: the record plus every record referencing it."""
        return await sync_to_async(self._hard_delete_sync)(record_id)

    def _hard_delete_sync(self, record_id: str) -> int:
        pk = _as_uuid(record_id)
        try:
            with transaction.atomic():
                if not OperationalRecord.objects.filter(id=pk).exists():
                    raise RecordNotFoundError(record_id)
                # QuerySet.delete bypasses the per-row guard on the model.
                deleted, _ = OperationalRecord.objects.filter(
                    Q(id=pk)
                    | Q(lineage_root_id=pk)
                    | Q(payload__booking_id=str(pk))
                    | Q(payload__original_id=str(pk))
                ).delete()
        except DatabaseError as exc:
            raise StoreUnavailableError("hard_delete", str(exc)) from exc
        logger.warning(f"Hard delete of {record_id} removed {deleted} record(s)")
        return deleted


class DjangoRoomDirectory:
    """RoomDirectory backed by the Room table."""

    async def list_rooms(self) -> Sequence[RoomMaster]:
        return await sync_to_async(self._list_sync)()

    def _list_sync(self) -> List[RoomMaster]:
        try:
            return [
                RoomMaster(
                    room_id=str(row.id),
                    room_number=row.room_number,
                    room_type=row.room_type,
                    price_per_night=int(row.price_per_night or 0),
                    active=row.is_active,
                )
                for row in Room.objects.order_by("room_number")
            ]
        except DatabaseError as exc:
            raise StoreUnavailableError("list_rooms", str(exc)) from exc
