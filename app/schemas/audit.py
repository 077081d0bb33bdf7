"""
Audit log schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from app.models.audit_log import AuditAction
from app.schemas.base import BaseSchema


class AuditLogEntry(BaseSchema):
    id: UUID
    event_id: UUID
    user_id: Optional[UUID] = None
    action_type: AuditAction
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
