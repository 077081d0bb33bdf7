"""
Custom application exceptions

Every expected outcome of the plan engine is one of these named conditions.
They are returned to the caller for translation into a response and are
never logged as unexpected faults.
"""

from datetime import datetime
from typing import Optional, Dict, Any


class SeatplanException(Exception):
    """Base exception for Seatplan application"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(SeatplanException):
    """Authentication related errors"""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="AUTH_ERROR",
            status_code=401,
            details=details
        )


class AuthorizationError(SeatplanException):
    """Caller lacks ownership of the event"""

    def __init__(self, message: str = "Not authorized", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
            details=details
        )


class NotFoundError(SeatplanException):
    """Resource not found errors"""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id {identifier} not found"
        super().__init__(
            message=message,
            code=f"{resource.upper()}_NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": str(identifier) if identifier else None}
        )
        self.resource = resource


class ValidationError(SeatplanException):
    """Validation errors"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=details
        )


class ConflictError(SeatplanException):
    """Resource conflict errors"""

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            details=details
        )


class VersionConflictError(ConflictError):
    """Compare-and-swap lost the race"""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            message=f"Event was modified concurrently (expected version {expected}, found {actual})",
            code="VERSION_CONFLICT",
            details={"expected_version": expected, "actual_version": actual}
        )
        self.expected = expected
        self.actual = actual


class NotLockOwnerError(ConflictError):
    """Release attempted by someone who does not hold the lock"""

    def __init__(self, event_id: Any):
        super().__init__(
            message="Lock is not held by the caller",
            code="NOT_LOCK_OWNER",
            details={"event_id": str(event_id)}
        )


class TableFullError(ConflictError):
    """No free seat left at the table"""

    def __init__(self, table_id: str):
        super().__init__(
            message=f"Table {table_id} has no free seat",
            code="TABLE_FULL",
            details={"table_id": table_id}
        )


class SeatOccupiedError(ConflictError):
    """Explicitly requested seat is taken by another guest"""

    def __init__(self, table_id: str, seat_no: int, guest_id: str):
        super().__init__(
            message=f"Seat {seat_no} at table {table_id} is occupied",
            code="SEAT_OCCUPIED",
            details={"table_id": table_id, "seat_no": seat_no, "guest_id": guest_id}
        )


class LockHeldByOtherError(SeatplanException):
    """Mutation attempted while another principal holds the edit lease"""

    def __init__(self, held_by: Any, expires_at: Optional[datetime]):
        super().__init__(
            message="Event is locked for editing by another session",
            code="LOCK_HELD_BY_OTHER",
            status_code=423,
            details={
                "held_by": str(held_by),
                "expires_at": expires_at.isoformat() if expires_at else None
            }
        )


class SnapshotEventMismatchError(SeatplanException):
    """Snapshot belongs to a different event"""

    def __init__(self, snapshot_id: Any, event_id: Any):
        super().__init__(
            message="Snapshot does not belong to this event",
            code="SNAPSHOT_EVENT_MISMATCH",
            status_code=400,
            details={"snapshot_id": str(snapshot_id), "event_id": str(event_id)}
        )


class CorruptedSnapshotDataError(SeatplanException):
    """Stored snapshot plan fails structural validation"""

    def __init__(self, snapshot_id: Any, errors: Optional[list] = None):
        super().__init__(
            message="Snapshot plan data is corrupted and cannot be restored",
            code="CORRUPTED_SNAPSHOT_DATA",
            status_code=422,
            details={"snapshot_id": str(snapshot_id), "errors": errors or []}
        )
