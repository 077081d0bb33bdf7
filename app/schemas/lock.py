"""
Edit lock schemas
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class AcquireLockRequest(BaseModel):
    minutes: Optional[int] = Field(None, description="Lease length; defaults to LOCK_DEFAULT_MINUTES")


class LockStatus(BaseModel):
    held_by: Optional[UUID] = None
    expires_at: Optional[datetime] = None


class LockResult(LockStatus):
    """Outcome of an acquire; acquired=False is a conflict, not an error"""
    acquired: bool


class ReleaseResult(BaseModel):
    released: bool
    event_id: UUID
