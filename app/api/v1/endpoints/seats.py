"""
Seat assignment endpoints
"""

from typing import Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import if_match_version, pick_version, set_version_header
from app.core.database import get_session
from app.core.security import get_current_user_id
from app.schemas.seat import AssignSeatRequest, SeatResult
from app.services.seat_service import SeatAssignmentService

router = APIRouter()


@router.post("/{event_id}/seats/assign", response_model=SeatResult)
async def assign_seat(
    event_id: UUID,
    assignment: AssignSeatRequest,
    response: Response,
    header_version: Optional[int] = Depends(if_match_version),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Seat a guest at a table; the seat number is chosen by the server
    """
    result = await SeatAssignmentService(db).assign(
        event_id,
        current_user_id,
        assignment.guest_id,
        assignment.table_id,
        expected_version=pick_version(assignment.expected_version, header_version),
    )
    set_version_header(response, result.version)
    return result
