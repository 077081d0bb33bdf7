"""
Event lifecycle and batched plan edits
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import unit_of_work
from app.core.exceptions import AuthorizationError
from app.core.metrics import metrics_collector
from app.models.audit_log import AuditAction, AuditLog
from app.models.event import Event
from app.schemas.event import (
    EventCreate,
    EventResponse,
    EventSummary,
    EventUpdate,
    GridSize,
    PlanOpsResult,
)
from app.schemas.lock import LockStatus
from app.schemas.plan import BulkPlanOps, PlanData
from app.services.audit_service import AuditService
from app.services.lock_service import (
    Clock,
    authorize_mutation,
    authorize_read,
    effective_lock,
    utcnow,
)
from app.services.plan_ops import apply_operation, load_plan, revalidate
from app.services.snapshot_service import SnapshotManager
from app.services.version_service import VersionCounter

logger = logging.getLogger(__name__)


def to_summary(event: Event) -> EventSummary:
    return EventSummary(
        id=event.id,
        owner_id=event.owner_id,
        name=event.name,
        event_date=event.event_date,
        grid=GridSize(rows=event.grid_rows, cols=event.grid_cols),
        autosave_version=event.autosave_version,
        created_at=event.created_at,
        updated_at=event.updated_at,
        deleted_at=event.deleted_at,
    )


def to_response(event: Event, now: datetime) -> EventResponse:
    lock = effective_lock(event, now)
    return EventResponse(
        **to_summary(event).model_dump(),
        plan_data=load_plan(event.plan_data),
        lock=LockStatus(held_by=lock.held_by, expires_at=lock.expires_at),
    )


class EventService:
    """Create, read, edit and soft-delete events"""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or utcnow
        self.versions = VersionCounter(session)
        self.snapshots = SnapshotManager(session, clock=self.clock)
        self.audit = AuditService(session)

    async def create_event(self, data: EventCreate, owner_id: UUID) -> Event:
        event = Event(
            owner_id=owner_id,
            name=data.name,
            event_date=data.event_date,
            grid_rows=data.grid_rows,
            grid_cols=data.grid_cols,
            plan_data=PlanData().to_json(),
            autosave_version=0,
        )
        async with unit_of_work(self.session):
            self.session.add(event)
        await self.session.refresh(event)

        logger.info(f"Event {event.id} created", extra={"event_id": event.id, "user_id": owner_id})
        return event

    async def get_event(self, event_id: UUID, requester: UUID) -> Event:
        event = await self.versions.load(event_id)
        authorize_read(event, requester, self.clock())
        return event

    async def list_events(self, owner_id: UUID, limit: int = 50, offset: int = 0) -> List[Event]:
        result = await self.session.execute(
            select(Event)
            .where(Event.owner_id == owner_id, Event.deleted_at.is_(None))
            .order_by(Event.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_event(self, event_id: UUID, data: EventUpdate, requester: UUID) -> Event:
        """
        Update event metadata. Changing the grid is structural, so the
        current plan is snapshotted in the same transaction.
        """
        event = await self.versions.load(event_id)
        authorize_mutation(event, requester, self.clock())

        changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})
        expected = event.autosave_version if data.expected_version is None else data.expected_version
        resized = (
            changes.get("grid_rows", event.grid_rows) != event.grid_rows
            or changes.get("grid_cols", event.grid_cols) != event.grid_cols
        )

        async with metrics_collector.track_mutation("update_event"):
            async with unit_of_work(self.session):
                if resized:
                    await self.snapshots.capture(event, requester, "Grid resize", is_manual=False)
                version = await self.versions.compare_and_swap(event.id, expected, changes)

        if resized:
            await metrics_collector.increment("snapshots_created")
        await self.audit.record(
            event_id,
            requester,
            AuditAction.EVENT_UPDATED,
            {"fields": sorted(changes), "grid_resized": resized, "version": version},
        )
        return await self.versions.load(event_id)

    async def soft_delete(self, event_id: UUID, requester: UUID, expected_version: Optional[int] = None) -> int:
        event = await self.versions.load(event_id)
        if event.owner_id != requester:
            raise AuthorizationError("Only the owner can delete this event")
        authorize_mutation(event, requester, self.clock())

        expected = event.autosave_version if expected_version is None else expected_version
        async with metrics_collector.track_mutation("delete_event"):
            async with unit_of_work(self.session):
                version = await self.versions.compare_and_swap(
                    event.id,
                    expected,
                    {
                        "deleted_at": datetime.now(timezone.utc),
                        "lock_held_by": None,
                        "lock_expires_at": None,
                    },
                )

        logger.info(f"Event {event_id} soft-deleted", extra={"event_id": event_id, "user_id": requester})
        await self.audit.record(event_id, requester, AuditAction.EVENT_DELETED, {"version": version})
        return version

    async def undelete(self, event_id: UUID, requester: UUID) -> Event:
        event = await self.versions.load(event_id, include_deleted=True)
        if event.owner_id != requester:
            raise AuthorizationError("Only the owner can restore this event")

        if event.is_deleted:
            async with metrics_collector.track_mutation("undelete_event"):
                async with unit_of_work(self.session):
                    version = await self.versions.compare_and_swap(
                        event.id,
                        event.autosave_version,
                        {"deleted_at": None},
                        allow_deleted=True,
                    )
            await self.audit.record(event_id, requester, AuditAction.EVENT_RESTORED, {"version": version})

        return await self.versions.load(event_id)

    async def apply_ops(self, event_id: UUID, batch: BulkPlanOps, requester: UUID) -> PlanOpsResult:
        """
        Apply a batch of plan operations atomically under one version bump.
        A batch that removes tables snapshots the prior plan first.
        """
        event = await self.versions.load(event_id)
        authorize_mutation(event, requester, self.clock())

        expected = event.autosave_version if batch.version is None else batch.version
        plan = load_plan(event.plan_data)
        outcomes = [apply_operation(plan, event.id, op) for op in batch.ops]
        plan = revalidate(plan)
        destructive = any(outcome.destructive for outcome in outcomes)

        async with metrics_collector.track_mutation("plan_ops"):
            async with unit_of_work(self.session):
                if destructive:
                    await self.snapshots.capture(
                        event, requester, "Before table removal", is_manual=False
                    )
                version = await self.versions.compare_and_swap(
                    event.id, expected, {"plan_data": plan.to_json()}
                )

        if destructive:
            await metrics_collector.increment("snapshots_created")
        logger.info(
            f"Applied {len(outcomes)} plan operations to event {event_id}",
            extra={"event_id": event_id, "user_id": requester, "version": version},
        )
        await self.audit.record_many(
            event_id,
            requester,
            [(outcome.action, outcome.details) for outcome in outcomes],
        )
        return PlanOpsResult(event_id=event_id, version=version, applied=len(outcomes), plan_data=plan)

    async def audit_log(self, event_id: UUID, requester: UUID, limit: Optional[int] = None) -> List[AuditLog]:
        event = await self.versions.load(event_id)
        if event.owner_id != requester:
            raise AuthorizationError("Only the owner can read the audit log")
        return await self.audit.list_entries(event_id, limit)
