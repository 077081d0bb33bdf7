"""
Snapshot history and restore for event plans
"""

import copy
from typing import List, Optional
from uuid import UUID
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import unit_of_work
from app.core.exceptions import (
    CorruptedSnapshotDataError,
    NotFoundError,
    SnapshotEventMismatchError,
)
from app.core.metrics import metrics_collector
from app.models.audit_log import AuditAction
from app.models.event import Event
from app.models.snapshot import Snapshot
from app.schemas.plan import PlanData
from app.schemas.snapshot import RestoreResult
from app.services.audit_service import AuditService
from app.services.lock_service import Clock, authorize_mutation, authorize_read, utcnow
from app.services.plan_ops import load_plan, summarize_diff
from app.services.version_service import VersionCounter

logger = logging.getLogger(__name__)


class SnapshotManager:
    """
    Snapshots are written once and linked to the latest earlier snapshot of
    the same event through previous_snapshot_id.
    """

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or utcnow
        self.versions = VersionCounter(session)
        self.audit = AuditService(session)

    async def _latest(self, event_id: UUID) -> Optional[Snapshot]:
        result = await self.session.execute(
            select(Snapshot)
            .where(Snapshot.event_id == event_id)
            .order_by(Snapshot.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def capture(
        self,
        event: Event,
        created_by: UUID,
        label: Optional[str],
        is_manual: bool,
    ) -> Snapshot:
        """
        Stage a snapshot of the event's current plan in the open transaction.
        The caller decides when it commits.
        """
        previous = await self._latest(event.id)
        plan_copy = copy.deepcopy(event.plan_data or {})

        try:
            diff_summary = summarize_diff(
                load_plan(previous.plan_data) if previous else None,
                load_plan(plan_copy),
            )
        except PydanticValidationError:
            diff_summary = None

        snapshot = Snapshot(
            event_id=event.id,
            created_by=created_by,
            label=label,
            is_manual=is_manual,
            plan_data=plan_copy,
            diff_summary=diff_summary,
            previous_snapshot_id=previous.id if previous else None,
        )
        self.session.add(snapshot)
        await self.session.flush()
        return snapshot

    async def create(
        self,
        event_id: UUID,
        requester: UUID,
        label: Optional[str] = None,
        manual: bool = True,
    ) -> Snapshot:
        """Record the current plan. The event version is left untouched."""
        event = await self.versions.load(event_id)
        authorize_read(event, requester, self.clock())

        async with unit_of_work(self.session):
            snapshot = await self.capture(event, requester, label, manual)

        await metrics_collector.increment("snapshots_created")
        logger.info(
            f"Snapshot {snapshot.id} created for event {event_id}",
            extra={"event_id": event_id, "snapshot_id": snapshot.id, "user_id": requester},
        )
        await self.audit.record(
            event_id,
            requester,
            AuditAction.SNAPSHOT_CREATED,
            {"snapshot_id": str(snapshot.id), "label": label, "is_manual": manual},
        )
        return snapshot

    async def list_snapshots(self, event_id: UUID, requester: UUID) -> List[Snapshot]:
        event = await self.versions.load(event_id)
        authorize_read(event, requester, self.clock())

        result = await self.session.execute(
            select(Snapshot)
            .where(Snapshot.event_id == event_id)
            .order_by(Snapshot.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_snapshot(self, event_id: UUID, snapshot_id: UUID, requester: UUID) -> Snapshot:
        event = await self.versions.load(event_id)
        authorize_read(event, requester, self.clock())

        snapshot = await self.session.get(Snapshot, snapshot_id)
        if snapshot is None or snapshot.event_id != event_id:
            raise NotFoundError("Snapshot", snapshot_id)
        return snapshot

    async def restore(
        self,
        event_id: UUID,
        requester: UUID,
        snapshot_id: UUID,
        expected_version: Optional[int] = None,
    ) -> RestoreResult:
        """
        Overwrite the event plan with a snapshot's plan.

        The current plan is saved first as an automatic snapshot, and both
        writes commit together or not at all.
        """
        event = await self.versions.load(event_id)
        authorize_mutation(event, requester, self.clock())

        snapshot = await self.session.get(Snapshot, snapshot_id)
        if snapshot is None:
            raise NotFoundError("Snapshot", snapshot_id)
        if snapshot.event_id != event.id:
            logger.warning(
                f"Rejected restore of snapshot {snapshot_id} into foreign event {event_id}",
                extra={"event_id": event_id, "snapshot_id": snapshot_id, "user_id": requester},
            )
            raise SnapshotEventMismatchError(snapshot_id, event_id)

        try:
            PlanData.model_validate(snapshot.plan_data)
        except PydanticValidationError as e:
            raise CorruptedSnapshotDataError(
                snapshot_id, [error["msg"] for error in e.errors()]
            )

        expected = event.autosave_version if expected_version is None else expected_version

        async with metrics_collector.track_mutation("restore_snapshot"):
            async with unit_of_work(self.session):
                safety_copy = await self.capture(
                    event, requester, f"Pre-restore of {snapshot_id}", is_manual=False
                )
                version = await self.versions.compare_and_swap(
                    event.id,
                    expected,
                    {"plan_data": copy.deepcopy(snapshot.plan_data)},
                )

        await metrics_collector.increment("snapshots_created")
        await metrics_collector.increment("snapshots_restored")
        logger.info(
            f"Event {event_id} restored from snapshot {snapshot_id} at version {version}",
            extra={"event_id": event_id, "snapshot_id": snapshot_id, "version": version},
        )
        await self.audit.record(
            event_id,
            requester,
            AuditAction.SNAPSHOT_RESTORED,
            {
                "snapshot_id": str(snapshot_id),
                "pre_restore_snapshot_id": str(safety_copy.id),
                "version": version,
            },
        )
        return RestoreResult(
            event_id=event_id,
            restored_snapshot_id=snapshot_id,
            pre_restore_snapshot_id=safety_copy.id,
            version=version,
        )
