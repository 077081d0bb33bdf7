"""
Pydantic schemas for request and response validation
"""

from app.schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventSummary,
    PlanOpsResult
)
from app.schemas.lock import AcquireLockRequest, LockResult, LockStatus, ReleaseResult
from app.schemas.plan import PlanData, BulkPlanOps
from app.schemas.seat import AssignSeatRequest, SeatResult
from app.schemas.snapshot import (
    SnapshotCreate,
    SnapshotResponse,
    SnapshotDetail,
    RestoreResult
)
from app.schemas.response import ErrorResponse

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventSummary",
    "PlanOpsResult",
    "AcquireLockRequest",
    "LockResult",
    "LockStatus",
    "ReleaseResult",
    "PlanData",
    "BulkPlanOps",
    "AssignSeatRequest",
    "SeatResult",
    "SnapshotCreate",
    "SnapshotResponse",
    "SnapshotDetail",
    "RestoreResult",
    "ErrorResponse"
]
