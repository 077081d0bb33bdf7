"""
Edit lease management for events

The lease is advisory: it tells other sessions that somebody is editing,
while the version counter stays the real guard against lost updates.
Expiry is evaluated lazily against the clock on every access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID
import logging

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import unit_of_work
from app.core.exceptions import (
    AuthorizationError,
    LockHeldByOtherError,
    NotLockOwnerError,
    ValidationError,
)
from app.core.metrics import metrics_collector
from app.models.audit_log import AuditAction
from app.models.event import Event
from app.schemas.lock import LockResult, LockStatus, ReleaseResult
from app.services.audit_service import AuditService
from app.services.version_service import VersionCounter

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from backends that drop tzinfo"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass
class EffectiveLock:
    held_by: Optional[UUID]
    expires_at: Optional[datetime]

    @property
    def active(self) -> bool:
        return self.held_by is not None


def effective_lock(event: Event, now: datetime) -> EffectiveLock:
    """Lock state as seen at ``now``; a lapsed or incomplete lease reads as unlocked"""
    expires_at = as_utc(event.lock_expires_at)
    if event.lock_held_by is None or expires_at is None or expires_at <= now:
        return EffectiveLock(held_by=None, expires_at=None)
    return EffectiveLock(held_by=event.lock_held_by, expires_at=expires_at)


def authorize_read(event: Event, requester: UUID, now: datetime):
    """Owner or current lease holder may read the event"""
    lock = effective_lock(event, now)
    if requester != event.owner_id and lock.held_by != requester:
        raise AuthorizationError("You don't have access to this event")


def authorize_mutation(event: Event, requester: UUID, now: datetime):
    """
    Caller must be the owner or the current lease holder, and no other
    principal may hold an unexpired lease.
    """
    lock = effective_lock(event, now)
    if requester != event.owner_id and lock.held_by != requester:
        raise AuthorizationError("You don't have permission to edit this event")
    if lock.active and lock.held_by != requester:
        raise LockHeldByOtherError(lock.held_by, lock.expires_at)


class LockManager:
    """Acquire, renew and release the edit lease of an event"""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or utcnow
        self.versions = VersionCounter(session)
        self.audit = AuditService(session)

    def _validate_ttl(self, ttl_minutes: Optional[int]) -> int:
        ttl = settings.LOCK_DEFAULT_MINUTES if ttl_minutes is None else ttl_minutes
        if not settings.LOCK_MIN_MINUTES <= ttl <= settings.LOCK_MAX_MINUTES:
            raise ValidationError(
                f"Lock duration must be between {settings.LOCK_MIN_MINUTES} "
                f"and {settings.LOCK_MAX_MINUTES} minutes",
                field="minutes",
            )
        return ttl

    async def status(self, event_id: UUID, requester: UUID) -> LockStatus:
        event = await self.versions.load(event_id)
        now = self.clock()
        authorize_read(event, requester, now)
        lock = effective_lock(event, now)
        return LockStatus(held_by=lock.held_by, expires_at=lock.expires_at)

    async def acquire(
        self,
        event_id: UUID,
        requester: UUID,
        ttl_minutes: Optional[int] = None,
    ) -> LockResult:
        """
        Take or extend the lease. A lease held by someone else is reported
        as ``acquired=False`` rather than raised.
        """
        event = await self.versions.load(event_id)

        if event.owner_id != requester:
            raise AuthorizationError("Only the event owner can lock it for editing")
        ttl = self._validate_ttl(ttl_minutes)

        now = self.clock()
        lock = effective_lock(event, now)
        if lock.active and lock.held_by != requester:
            await self.session.rollback()
            await metrics_collector.increment("lock_conflicts")
            logger.info(
                f"Lock on event {event_id} is held by {lock.held_by} until {lock.expires_at}",
                extra={"event_id": event_id, "user_id": requester},
            )
            return LockResult(acquired=False, held_by=lock.held_by, expires_at=lock.expires_at)

        expires_at = now + timedelta(minutes=ttl)
        async with unit_of_work(self.session):
            result = await self.session.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.deleted_at.is_(None),
                    or_(
                        Event.lock_held_by.is_(None),
                        Event.lock_expires_at.is_(None),
                        Event.lock_expires_at <= now,
                        Event.lock_held_by == requester,
                    ),
                )
                .values(lock_held_by=requester, lock_expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )

        if result.rowcount != 1:
            # Someone else took the lease between our read and the write
            event = await self.versions.load(event_id)
            lock = effective_lock(event, now)
            await self.session.rollback()
            await metrics_collector.increment("lock_conflicts")
            return LockResult(acquired=False, held_by=lock.held_by, expires_at=lock.expires_at)

        await metrics_collector.increment("locks_acquired")
        logger.info(
            f"Lock on event {event_id} granted until {expires_at.isoformat()}",
            extra={"event_id": event_id, "user_id": requester},
        )
        await self.audit.record(
            event_id,
            requester,
            AuditAction.LOCK_ACQUIRED,
            {"expires_at": expires_at.isoformat(), "minutes": ttl},
        )
        return LockResult(acquired=True, held_by=requester, expires_at=expires_at)

    async def release(self, event_id: UUID, requester: UUID) -> ReleaseResult:
        event = await self.versions.load(event_id)
        lock = effective_lock(event, self.clock())

        if lock.held_by != requester:
            await self.session.rollback()
            raise NotLockOwnerError(event_id)

        async with unit_of_work(self.session):
            await self.session.execute(
                update(Event)
                .where(Event.id == event_id, Event.lock_held_by == requester)
                .values(lock_held_by=None, lock_expires_at=None)
                .execution_options(synchronize_session=False)
            )

        await metrics_collector.increment("locks_released")
        logger.info(
            f"Lock on event {event_id} released",
            extra={"event_id": event_id, "user_id": requester},
        )
        await self.audit.record(event_id, requester, AuditAction.LOCK_RELEASED, {})
        return ReleaseResult(released=True, event_id=event_id)
