"""
Deterministic seat assignment
"""

from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import unit_of_work
from app.core.exceptions import TableFullError
from app.core.metrics import metrics_collector
from app.models.audit_log import AuditAction
from app.schemas.seat import SeatRefResponse, SeatResult
from app.services.audit_service import AuditService
from app.services.lock_service import Clock, authorize_mutation, utcnow
from app.services.plan_ops import assign_guest, load_plan, placement_details
from app.services.version_service import VersionCounter

logger = logging.getLogger(__name__)


class SeatAssignmentService:
    """
    Seats a guest at a table. The seat is picked from the table's free
    seats by a stable hash of (event, guest), so a retried request against
    the same seating picks the same seat.
    """

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or utcnow
        self.versions = VersionCounter(session)
        self.audit = AuditService(session)

    async def assign(
        self,
        event_id: UUID,
        requester: UUID,
        guest_id: str,
        table_id: str,
        expected_version: Optional[int] = None,
    ) -> SeatResult:
        event = await self.versions.load(event_id)
        authorize_mutation(event, requester, self.clock())

        read_version = event.autosave_version
        expected = read_version if expected_version is None else expected_version

        plan = load_plan(event.plan_data)
        try:
            placement = assign_guest(plan, event.id, guest_id, table_id)
        except TableFullError:
            await metrics_collector.increment("table_full_rejections")
            raise

        async with metrics_collector.track_mutation("assign_seat"):
            async with unit_of_work(self.session):
                version = await self.versions.compare_and_swap(
                    event.id, expected, {"plan_data": plan.to_json()}
                )

        await metrics_collector.increment("seats_assigned")
        logger.info(
            f"Guest {guest_id} seated at table {placement.table_id} seat {placement.seat_no}",
            extra={"event_id": event_id, "user_id": requester, "version": version},
        )
        await self.audit.record(
            event_id,
            requester,
            AuditAction.SEAT_ASSIGNED,
            placement_details(guest_id, placement),
        )

        previous = None
        if placement.previous:
            previous = SeatRefResponse(table_id=placement.previous[0], seat_no=placement.previous[1])
        return SeatResult(
            guest_id=guest_id,
            table_id=placement.table_id,
            seat_no=placement.seat_no,
            previous_seat=previous,
            version=version,
        )
