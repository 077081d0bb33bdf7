"""
Event management endpoints
"""

from typing import Any, List, Optional
from uuid import UUID
import logging
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import if_match_version, pick_version, set_version_header
from app.core.database import get_session
from app.core.security import get_current_user_id
from app.schemas.audit import AuditLogEntry
from app.schemas.event import EventCreate, EventResponse, EventSummary, EventUpdate, PlanOpsResult
from app.schemas.plan import BulkPlanOps
from app.services.event_service import EventService, to_response, to_summary
from app.services.lock_service import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    response: Response,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Create an event with an empty plan at version 0
    """
    event = await EventService(db).create_event(event_data, current_user_id)
    set_version_header(response, event.autosave_version)
    return to_response(event, utcnow())


@router.get("/", response_model=List[EventSummary])
async def list_events(
    skip: int = Query(0, ge=0, alias="offset"),
    limit: int = Query(50, ge=1, le=100),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    List the caller's events, most recently edited first
    """
    events = await EventService(db).list_events(current_user_id, limit=limit, offset=skip)
    return [to_summary(event) for event in events]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    response: Response,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Get event with its plan and effective lock state
    """
    event = await EventService(db).get_event(event_id, current_user_id)
    set_version_header(response, event.autosave_version)
    return to_response(event, utcnow())


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_update: EventUpdate,
    response: Response,
    header_version: Optional[int] = Depends(if_match_version),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Update event name, date or grid size
    """
    event_update.expected_version = pick_version(event_update.expected_version, header_version)
    event = await EventService(db).update_event(event_id, event_update, current_user_id)
    set_version_header(response, event.autosave_version)
    return to_response(event, utcnow())


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    header_version: Optional[int] = Depends(if_match_version),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
):
    """
    Soft-delete an event (owner only)
    """
    await EventService(db).soft_delete(event_id, current_user_id, expected_version=header_version)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/undelete", response_model=EventResponse)
async def undelete_event(
    event_id: UUID,
    response: Response,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Bring back a soft-deleted event (owner only)
    """
    event = await EventService(db).undelete(event_id, current_user_id)
    set_version_header(response, event.autosave_version)
    return to_response(event, utcnow())


@router.post("/{event_id}/plan/ops", response_model=PlanOpsResult)
async def apply_plan_ops(
    event_id: UUID,
    batch: BulkPlanOps,
    response: Response,
    header_version: Optional[int] = Depends(if_match_version),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Apply a batch of plan edits as one versioned change
    """
    batch.version = pick_version(batch.version, header_version)
    result = await EventService(db).apply_ops(event_id, batch, current_user_id)
    set_version_header(response, result.version)
    return result


@router.get("/{event_id}/audit-log", response_model=List[AuditLogEntry])
async def get_audit_log(
    event_id: UUID,
    limit: Optional[int] = Query(None, ge=1),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Newest audit entries first (owner only)
    """
    return await EventService(db).audit_log(event_id, current_user_id, limit=limit)
