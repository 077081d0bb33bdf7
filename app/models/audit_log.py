"""
Audit log model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Enum, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum
import uuid

from app.core.database import Base
from app.models.event import PlanJSON


class AuditAction(str, enum.Enum):
    GUEST_ADD = "guest_add"
    GUEST_EDIT = "guest_edit"
    GUEST_DELETE = "guest_delete"
    TABLE_CREATE = "table_create"
    TABLE_UPDATE = "table_update"
    TABLE_DELETE = "table_delete"
    SEAT_ASSIGNED = "seat_assigned"
    SEAT_SWAP = "seat_swap"
    SEAT_ORDER_CHANGED = "seat_order_changed"
    LOCK_ACQUIRED = "lock_acquired"
    LOCK_RELEASED = "lock_released"
    SNAPSHOT_CREATED = "snapshot_created"
    SNAPSHOT_RESTORED = "snapshot_restored"
    EVENT_UPDATED = "event_updated"
    EVENT_DELETED = "event_deleted"
    EVENT_RESTORED = "event_restored"


class AuditLog(Base):
    """
    High-level action trail for an event
    """
    __tablename__ = "audit_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=True)
    action_type = Column(Enum(AuditAction), nullable=False, index=True)
    details = Column(PlanJSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Relationships
    event = relationship("Event", back_populates="audit_entries")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, event_id={self.event_id}, action={self.action_type})>"
