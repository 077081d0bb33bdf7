"""
Seat assignment schemas
"""

from typing import Optional
from pydantic import BaseModel, Field


class AssignSeatRequest(BaseModel):
    guest_id: str = Field(..., min_length=1)
    table_id: str = Field(..., min_length=1)
    expected_version: Optional[int] = Field(None, ge=0)


class SeatRefResponse(BaseModel):
    table_id: str
    seat_no: int


class SeatResult(BaseModel):
    guest_id: str
    table_id: str
    seat_no: int
    previous_seat: Optional[SeatRefResponse] = None
    version: int
