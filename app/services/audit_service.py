"""
Audit trail for event actions

Appends are best-effort: they run after the mutation they describe has
committed, and a failed append never fails that mutation.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.audit_log import AuditAction, AuditLog

logger = logging.getLogger(__name__)


class AuditService:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        event_id: UUID,
        user_id: Optional[UUID],
        action: AuditAction,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            event_id=event_id,
            user_id=user_id,
            action_type=action,
            details=details or {},
        )
        try:
            self.session.add(entry)
            await self.session.commit()
            return entry
        except Exception as e:
            await self.session.rollback()
            logger.error(
                f"Failed to write audit entry {action.value}: {type(e).__name__}: {e}",
                extra={"event_id": event_id, "user_id": user_id, "action": action.value},
            )
            return None

    async def record_many(
        self,
        event_id: UUID,
        user_id: Optional[UUID],
        entries: List[tuple],
    ):
        for action, details in entries:
            await self.record(event_id, user_id, action, details)

    async def list_entries(self, event_id: UUID, limit: Optional[int] = None) -> List[AuditLog]:
        limit = min(limit or settings.AUDIT_LOG_PAGE_LIMIT, settings.AUDIT_LOG_PAGE_LIMIT)
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.event_id == event_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
