"""
Snapshot endpoints
"""

from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import if_match_version, pick_version, set_version_header
from app.core.database import get_session
from app.core.security import get_current_user_id
from app.schemas.snapshot import (
    RestoreResult,
    SnapshotCreate,
    SnapshotDetail,
    SnapshotResponse,
    SnapshotRestoreRequest,
)
from app.services.snapshot_service import SnapshotManager

router = APIRouter()


@router.get("/{event_id}/snapshots", response_model=List[SnapshotResponse])
async def list_snapshots(
    event_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await SnapshotManager(db).list_snapshots(event_id, current_user_id)


@router.post("/{event_id}/snapshots", response_model=SnapshotResponse, status_code=status.HTTP_201_CREATED)
async def create_snapshot(
    event_id: UUID,
    snapshot_data: Optional[SnapshotCreate] = Body(None),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Save the current plan as a manual snapshot
    """
    label = snapshot_data.label if snapshot_data else None
    return await SnapshotManager(db).create(event_id, current_user_id, label=label)


@router.get("/{event_id}/snapshots/{snapshot_id}", response_model=SnapshotDetail)
async def get_snapshot(
    event_id: UUID,
    snapshot_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await SnapshotManager(db).get_snapshot(event_id, snapshot_id, current_user_id)


@router.post("/{event_id}/snapshots/{snapshot_id}/restore", response_model=RestoreResult)
async def restore_snapshot(
    event_id: UUID,
    snapshot_id: UUID,
    response: Response,
    restore_request: Optional[SnapshotRestoreRequest] = Body(None),
    header_version: Optional[int] = Depends(if_match_version),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Replace the event plan with the snapshot's plan.
    The plan being replaced is kept as an automatic snapshot.
    """
    body_version = restore_request.expected_version if restore_request else None
    result = await SnapshotManager(db).restore(
        event_id,
        current_user_id,
        snapshot_id,
        expected_version=pick_version(body_version, header_version),
    )
    set_version_header(response, result.version)
    return result
