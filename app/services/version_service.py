"""
Optimistic version counter for events

Every accepted mutation of an event goes through compare_and_swap(), which
is the only serialization point between concurrent callers.
"""

from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, VersionConflictError
from app.models.event import Event

logger = logging.getLogger(__name__)


class VersionCounter:
    """Compare-and-swap over events.autosave_version"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, event_id: UUID, include_deleted: bool = False) -> Event:
        """
        Read the event row, bypassing the session identity map so the
        version seen is the stored one.
        """
        stmt = (
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        event = result.scalar_one_or_none()

        if event is None or (event.is_deleted and not include_deleted):
            raise NotFoundError("Event", event_id)
        return event

    async def current_version(self, event_id: UUID) -> Optional[int]:
        result = await self.session.execute(
            select(Event.autosave_version).where(Event.id == event_id)
        )
        return result.scalar_one_or_none()

    async def compare_and_swap(
        self,
        event_id: UUID,
        expected_version: int,
        values: Dict[str, Any],
        allow_deleted: bool = False,
    ) -> int:
        """
        Persist ``values`` only if the stored version still equals
        ``expected_version``. Returns the new version.
        """
        conditions = [Event.id == event_id, Event.autosave_version == expected_version]
        if not allow_deleted:
            conditions.append(Event.deleted_at.is_(None))

        stmt = (
            update(Event)
            .where(*conditions)
            .values(
                **values,
                autosave_version=Event.autosave_version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount != 1:
            actual = await self.current_version(event_id)
            if actual is None:
                raise NotFoundError("Event", event_id)
            if actual == expected_version:
                # Version matched, so the row was filtered out as deleted
                raise NotFoundError("Event", event_id)
            logger.info(
                f"Version conflict on event {event_id}: expected {expected_version}, found {actual}",
                extra={"event_id": event_id, "version": actual},
            )
            raise VersionConflictError(expected_version, actual)

        new_version = expected_version + 1
        logger.debug(
            f"Event {event_id} advanced to version {new_version}",
            extra={"event_id": event_id, "version": new_version},
        )
        return new_version
