"""
Front Desk Event Store: Collaborator Contracts
================================================
The event log, room master list and session are external collaborators.
The engine only consumes snapshots from them and appends new records.

RULES (NON-NEGOTIABLE):
- An OperationalEvent is never mutated after creation
- Edits append a new version in the same lineage (version_no + 1)
- Soft deletion sets deleted_at and removes the event from every derivation
- The backing store is the consistency authority, not this process

This file contains NO persistence logic and NO business logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
)

from core.time.temporal import parse_instant


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class RecordStatus(Enum):
    """Workflow status of an operational record."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    CONVERTED = "converted"

    @classmethod
    def parse(cls, value: Any) -> "RecordStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError as exc:
            raise ValueError(
                f"status must be one of {[s.value for s in cls]}, got {value!r}."
            ) from exc


# ══════════════════════════════════════════════════════════════
# OPERATIONAL EVENT (immutable record envelope)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OperationalEvent:
    """
    One append-only business record.

    Fields:
        id:               Record identifier (unique per version).
        entity_kind:      Event-log partition ('front_desk', 'storekeeper').
        payload:          Tagged JSON payload; payload['type'] is the tag.
        status:           Workflow status.
        lineage_root_id:  First version's id (None on the first version).
        version_no:       1-based version counter inside the lineage.
        submitted_by:     Staff/user id that appended the record.
        financial_amount: Signed amount the store keeps for reporting.
        created_at:       Store timestamp.
        deleted_at:       Soft-deletion timestamp, None if live.
    """

    id: str
    entity_kind: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    status: RecordStatus = RecordStatus.PENDING
    lineage_root_id: Optional[str] = None
    version_no: int = 1
    submitted_by: Optional[str] = None
    financial_amount: int = 0
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("id must be a non-empty string.")
        if not self.entity_kind or not isinstance(self.entity_kind, str):
            raise ValueError("entity_kind must be a non-empty string.")
        if not isinstance(self.status, RecordStatus):
            raise ValueError("status must be a RecordStatus enum.")
        if not isinstance(self.version_no, int) or self.version_no < 1:
            raise ValueError("version_no must be a positive integer.")
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload or {})))

    @property
    def record_type(self) -> str:
        return str(self.payload.get("type") or "")

    @property
    def lineage_key(self) -> str:
        """Logical entity key: lineage root, or own id for first versions."""
        return self.lineage_root_id or self.id

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_approved(self) -> bool:
        return self.status is RecordStatus.APPROVED

    def with_changes(self, **changes: Any) -> "OperationalEvent":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entity_kind": self.entity_kind,
            "payload": dict(self.payload),
            "status": self.status.value,
            "lineage_root_id": self.lineage_root_id,
            "version_no": self.version_no,
            "submitted_by": self.submitted_by,
            "financial_amount": self.financial_amount,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OperationalEvent":
        """Build from a store row. Accepts the original column names too."""
        created_at = data.get("created_at")
        deleted_at = data.get("deleted_at")
        return cls(
            id=str(data["id"]),
            entity_kind=str(data.get("entity_kind") or data.get("entity_type") or ""),
            payload=dict(data.get("payload") or data.get("data") or {}),
            status=RecordStatus.parse(data.get("status") or "pending"),
            lineage_root_id=_opt_str(
                data.get("lineage_root_id", data.get("original_id"))
            ),
            version_no=int(data.get("version_no") or 1),
            submitted_by=_opt_str(data.get("submitted_by")),
            financial_amount=int(round(float(data.get("financial_amount") or 0))),
            created_at=parse_instant(created_at) if created_at else None,
            deleted_at=parse_instant(deleted_at) if deleted_at else None,
        )


def _opt_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


# ══════════════════════════════════════════════════════════════
# ROOM MASTER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RoomMaster:
    """Slow-changing room definition from the room collaborator."""

    room_id: str
    room_number: str
    room_type: str = ""
    price_per_night: int = 0
    active: bool = True

    def __post_init__(self):
        if not self.room_id or not isinstance(self.room_id, str):
            raise ValueError("room_id must be a non-empty string.")
        if not isinstance(self.price_per_night, int) or self.price_per_night < 0:
            raise ValueError("price_per_night must be a non-negative integer.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "room_id": self.room_id,
            "room_number": self.room_number,
            "room_type": self.room_type,
            "price_per_night": self.price_per_night,
            "active": self.active,
        }


# ══════════════════════════════════════════════════════════════
# COLLABORATOR PROTOCOLS
# ══════════════════════════════════════════════════════════════

EventPredicate = Callable[[OperationalEvent], bool]


class EventLog(Protocol):
    """Append-only operational record store."""

    async def query(
        self,
        entity_kind: str,
        *,
        predicate: Optional[EventPredicate] = None,
        statuses: Optional[Iterable[RecordStatus]] = None,
        exclude_deleted: bool = True,
        order: str = "created_at",
    ) -> List[OperationalEvent]:
        ...  # pragma: no cover

    async def insert(self, event: OperationalEvent) -> OperationalEvent:
        ...  # pragma: no cover

    async def approve(self, record_id: str) -> OperationalEvent:
        ...  # pragma: no cover

    async def soft_delete(self, record_id: str) -> None:
        ...  # pragma: no cover

    async def edit_with_new_version(
        self, previous_id: str, new_payload: Mapping[str, Any]
    ) -> str:
        ...  # pragma: no cover

    async def hard_delete(self, record_id: str) -> int:
        ...  # pragma: no cover


class RoomDirectory(Protocol):
    """Room master collaborator."""

    async def list_rooms(self) -> Sequence[RoomMaster]:
        ...  # pragma: no cover


class StockLevelSource(Protocol):
    """Authoritative stock-level lookup (secondary, may fail)."""

    async def stock_levels(self) -> Mapping[str, int]:
        ...  # pragma: no cover


class SessionContext(Protocol):
    """
    Read-only view of the signed-in staff member.

    The engine performs no authorization. The role is only recorded
    on appended records and used for reservation auto-approval.
    """

    role: str
    staff_id: str
    user_id: str

    async def is_session_valid(self) -> bool:
        ...  # pragma: no cover
