"""
Snapshot model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base
from app.models.event import PlanJSON


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshot(Base):
    """
    Immutable copy of an event plan, chained to its predecessor.
    Rows are written once and never updated.
    """
    __tablename__ = "snapshots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), nullable=False)
    label = Column(String(200), nullable=True)
    is_manual = Column(Boolean, nullable=False, default=False)
    plan_data = Column(PlanJSON, nullable=False)
    diff_summary = Column(PlanJSON, nullable=True)
    previous_snapshot_id = Column(
        UUID(as_uuid=True),
        ForeignKey("snapshots.id", ondelete="SET NULL"),
        nullable=True
    )
    # Client-side microsecond timestamp; chain order depends on it
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    # Relationships
    event = relationship("Event", back_populates="snapshots")

    def __repr__(self):
        return f"<Snapshot(id={self.id}, event_id={self.event_id}, manual={self.is_manual}, label={self.label})>"
