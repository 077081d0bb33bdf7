"""
Edit lock endpoints
"""

from typing import Any, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import get_current_user_id
from app.schemas.lock import AcquireLockRequest, LockResult, LockStatus, ReleaseResult
from app.services.lock_service import LockManager

router = APIRouter()


@router.get("/{event_id}/lock", response_model=LockStatus)
async def get_lock(
    event_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await LockManager(db).status(event_id, current_user_id)


@router.post("/{event_id}/lock", response_model=LockResult)
async def acquire_lock(
    event_id: UUID,
    lock_request: Optional[AcquireLockRequest] = Body(None),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Acquire or extend the edit lease.
    A lease held by someone else answers 409 with the current holder.
    """
    minutes = lock_request.minutes if lock_request else None
    result = await LockManager(db).acquire(event_id, current_user_id, minutes)

    if not result.acquired:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=result.model_dump(mode="json")
        )
    return result


@router.delete("/{event_id}/lock", response_model=ReleaseResult)
async def release_lock(
    event_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await LockManager(db).release(event_id, current_user_id)
