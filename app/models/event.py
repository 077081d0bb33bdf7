"""
Event model: the versioned seating-plan aggregate
"""

from sqlalchemy import Column, String, Integer, Date, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
PlanJSON = JSON().with_variant(JSONB(), "postgresql")


class Event(Base):
    """
    Seating plan container. The whole plan (tables, guests, seats, settings)
    is one JSON aggregate guarded by a single version counter.
    """
    __tablename__ = "events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    event_date = Column(Date, nullable=True)
    grid_rows = Column(Integer, nullable=False)
    grid_cols = Column(Integer, nullable=False)
    plan_data = Column(PlanJSON, nullable=False, default=dict)
    autosave_version = Column(Integer, nullable=False, default=0)

    # Embedded edit lease
    lock_held_by = Column(UUID(as_uuid=True), nullable=True)
    lock_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    snapshots = relationship("Snapshot", back_populates="event", cascade="all, delete-orphan")
    audit_entries = relationship("AuditLog", back_populates="event", cascade="all, delete-orphan")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        return f"<Event(id={self.id}, name={self.name}, version={self.autosave_version})>"
