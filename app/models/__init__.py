"""
Database models
"""

from app.models.event import Event
from app.models.snapshot import Snapshot
from app.models.audit_log import AuditLog, AuditAction

__all__ = [
    "Event",
    "Snapshot",
    "AuditLog",
    "AuditAction"
]
