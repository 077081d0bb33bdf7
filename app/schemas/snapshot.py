"""
Snapshot schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema


class SnapshotCreate(BaseModel):
    label: Optional[str] = Field(None, max_length=200)


class SnapshotRestoreRequest(BaseModel):
    expected_version: Optional[int] = Field(None, ge=0)


class SnapshotResponse(BaseSchema):
    id: UUID
    event_id: UUID
    created_by: UUID
    is_manual: bool
    label: Optional[str] = None
    previous_snapshot_id: Optional[UUID] = None
    diff_summary: Optional[Dict[str, int]] = None
    created_at: datetime


class SnapshotDetail(SnapshotResponse):
    plan_data: Dict[str, Any]


class RestoreResult(BaseModel):
    event_id: UUID
    restored_snapshot_id: UUID
    pre_restore_snapshot_id: UUID
    version: int
