"""
Front Desk Engine: Errors
===========================
Error types for snapshot fetching and mutating front-desk operations.

Derivation functions never raise these for missing optional fields;
they substitute neutral defaults. Errors here are for fetch failures
and for refusing a write before it happens.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FrontDeskRejectionCode:
    """Machine-readable error codes."""

    TRANSIENT_FETCH = "TRANSIENT_FETCH"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    WINDOW_CONFLICT = "WINDOW_CONFLICT"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    PARTIAL_WRITE = "PARTIAL_WRITE"
    STORE_CONSTRAINT = "STORE_CONSTRAINT"


class FrontDeskError(Exception):
    """Base error for all front-desk engine operations."""

    code = "FRONT_DESK_ERROR"
    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "retryable": self.retryable,
        }


class TransientFetchError(FrontDeskError):
    """A collaborator could not be reached. Only the current pass aborts."""

    code = FrontDeskRejectionCode.TRANSIENT_FETCH
    retryable = True

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Could not fetch {source}: {detail}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["source"] = self.source
        return data


class ValidationError(FrontDeskError, ValueError):
    """Malformed input. Raised before any write."""

    code = FrontDeskRejectionCode.VALIDATION_FAILED

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"Invalid {field}: {detail}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class ConflictError(FrontDeskError):
    """The candidate window overlaps an approved booking or reservation."""

    code = FrontDeskRejectionCode.WINDOW_CONFLICT

    def __init__(self, conflict):
        self.conflict = conflict
        super().__init__(
            f"Room {conflict.room_id} is taken by {conflict.kind} "
            f"{conflict.record_id} from {conflict.window.start.isoformat()} "
            f"to {conflict.window.end.isoformat()}."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["conflict"] = self.conflict.to_dict()
        return data


class SessionExpiredError(FrontDeskError):
    code = FrontDeskRejectionCode.SESSION_EXPIRED

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "Session expired. Sign in again; nothing was written."
        )


class PartialWriteFailure(FrontDeskError):
    """
    The first write landed and a dependent write failed.

    The created record exists; the caller must surface the
    inconsistency instead of reporting success or total failure.
    """

    code = FrontDeskRejectionCode.PARTIAL_WRITE

    def __init__(self, created_id: str, failed_step: str, cause: BaseException):
        self.created_id = created_id
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            f"Record {created_id} was created but {failed_step} failed: {cause}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["created_id"] = self.created_id
        data["failed_step"] = self.failed_step
        return data


class StoreConstraintError(FrontDeskError):
    """The backing store refused the write on its own constraints."""

    code = FrontDeskRejectionCode.STORE_CONSTRAINT
    retryable = True

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Store rejected the write: {detail}")
