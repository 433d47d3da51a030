"""
Front Desk Event Store: Persistence Errors
============================================
Errors raised by event-log and room-directory adapters.

Adapters raise these; the engine layer translates them into its own
taxonomy (unreachable store vs. constraint violation).
"""


class PersistenceRejectionCode:
    """Rejection codes for persistence-stage failures."""

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"


class EventStoreError(Exception):
    """Base error for all event-log adapter operations."""

    code = "EVENT_STORE_ERROR"


class StoreUnavailableError(EventStoreError):
    """The backing store could not be reached or failed mid-query."""

    code = PersistenceRejectionCode.STORE_UNAVAILABLE

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Event store unavailable during {operation}: {detail}")


class StoreConstraintViolation(EventStoreError):
    """The backing store refused a write on one of its own constraints."""

    code = PersistenceRejectionCode.CONSTRAINT_VIOLATION

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Event store refused {operation}: {detail}")


class RecordNotFoundError(EventStoreError):
    code = PersistenceRejectionCode.RECORD_NOT_FOUND

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Record {record_id} not found.")


class InvalidTransitionError(EventStoreError):
    """Store-level transition not allowed from the record's current state."""

    code = PersistenceRejectionCode.INVALID_TRANSITION

    def __init__(self, record_id: str, detail: str):
        self.record_id = record_id
        self.detail = detail
        super().__init__(f"Record {record_id}: {detail}")
