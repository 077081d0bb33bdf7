"""
Event schemas
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.base import BaseSchema
from app.schemas.lock import LockStatus
from app.schemas.plan import PlanData


class GridSize(BaseModel):
    rows: int
    cols: int


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    event_date: Optional[date] = None
    grid_rows: int = Field(..., gt=0)
    grid_cols: int = Field(..., gt=0)


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    event_date: Optional[date] = None
    grid_rows: Optional[int] = Field(None, gt=0)
    grid_cols: Optional[int] = Field(None, gt=0)
    expected_version: Optional[int] = Field(None, ge=0)

    @field_validator("name", "grid_rows", "grid_cols")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set - {"expected_version"}:
            raise ValueError("At least one field must be provided")
        return self


class EventSummary(BaseSchema):
    id: UUID
    owner_id: UUID
    name: str
    event_date: Optional[date] = None
    grid: GridSize
    autosave_version: int
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class EventResponse(EventSummary):
    plan_data: PlanData
    lock: LockStatus


class PlanOpsResult(BaseModel):
    event_id: UUID
    version: int
    applied: int
    plan_data: PlanData
