"""
Tests for event lifecycle and batched plan operations
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from app.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    SeatOccupiedError,
    ValidationError,
    VersionConflictError,
)
from app.models.audit_log import AuditAction
from app.models.snapshot import Snapshot
from app.schemas.event import EventCreate, EventUpdate
from app.schemas.plan import BulkPlanOps
from app.services.audit_service import AuditService
from app.services.event_service import EventService, to_response
from app.services.snapshot_service import SnapshotManager


def ops(*operations, version=None):
    return BulkPlanOps.model_validate({"version": version, "ops": list(operations)})


@pytest.mark.asyncio
class TestEventLifecycle:
    """Create, update, delete and undelete"""

    async def test_create_starts_at_version_zero(self, db_session, owner_id, clock):
        event = await EventService(db_session).create_event(
            EventCreate(name="Gala", event_date=date(2026, 6, 1), grid_rows=10, grid_cols=12),
            owner_id,
        )

        assert event.autosave_version == 0
        assert event.owner_id == owner_id

        response = to_response(event, clock.now)
        assert response.grid.rows == 10
        assert response.plan_data.tables == []
        assert response.lock.held_by is None

    async def test_list_only_own_live_events(self, db_session, make_event, owner_id, other_id):
        mine = await make_event()
        await make_event(owner=other_id)
        await make_event(deleted_at=datetime.now(timezone.utc))

        events = await EventService(db_session).list_events(owner_id)
        assert [e.id for e in events] == [mine.id]

    async def test_rename_bumps_version_without_snapshot(self, db_session, make_event, owner_id, count_rows):
        event = await make_event()

        updated = await EventService(db_session).update_event(
            event.id, EventUpdate(name="Renamed"), owner_id
        )

        assert updated.name == "Renamed"
        assert updated.autosave_version == 1
        assert await count_rows(Snapshot, event.id) == 0

    async def test_grid_resize_snapshots_plan(self, db_session, make_event, build_plan, owner_id, count_rows):
        plan = build_plan(("t1", 4))
        event = await make_event(plan=plan)

        updated = await EventService(db_session).update_event(
            event.id, EventUpdate(grid_rows=40), owner_id
        )

        assert updated.grid_rows == 40
        assert updated.autosave_version == 1
        snapshots = await SnapshotManager(db_session).list_snapshots(event.id, owner_id)
        assert len(snapshots) == 1
        assert snapshots[0].label == "Grid resize"
        assert not snapshots[0].is_manual

    async def test_stale_update_leaves_no_snapshot(self, db_session, make_event, owner_id, read_event, count_rows):
        event = await make_event(version=3)

        with pytest.raises(VersionConflictError):
            await EventService(db_session).update_event(
                event.id, EventUpdate(grid_cols=99, expected_version=2), owner_id
            )

        stored = await read_event(event.id)
        assert stored.grid_cols == 30
        assert await count_rows(Snapshot, event.id) == 0

    async def test_soft_delete_clears_lock_and_hides_event(
        self, db_session, make_event, owner_id, clock, read_event
    ):
        event = await make_event(lock_held_by=owner_id, lock_expires_at=clock.now + timedelta(minutes=5))
        service = EventService(db_session, clock=clock)

        version = await service.soft_delete(event.id, owner_id)

        assert version == 1
        stored = await read_event(event.id)
        assert stored.deleted_at is not None
        assert stored.lock_held_by is None
        with pytest.raises(NotFoundError):
            await service.get_event(event.id, owner_id)

    async def test_only_owner_deletes(self, db_session, make_event, other_id):
        event = await make_event()
        with pytest.raises(AuthorizationError):
            await EventService(db_session).soft_delete(event.id, other_id)

    async def test_undelete(self, db_session, make_event, owner_id, other_id):
        event = await make_event(deleted_at=datetime.now(timezone.utc), version=5)
        service = EventService(db_session)

        with pytest.raises(AuthorizationError):
            await service.undelete(event.id, other_id)

        restored = await service.undelete(event.id, owner_id)
        assert restored.deleted_at is None
        assert restored.autosave_version == 6

    async def test_stranger_cannot_read(self, db_session, make_event, other_id):
        event = await make_event()
        with pytest.raises(AuthorizationError):
            await EventService(db_session).get_event(event.id, other_id)


@pytest.mark.asyncio
class TestPlanOperations:
    """Batched plan edits"""

    async def test_batch_is_one_version_bump(self, db_session, make_event, owner_id, read_event):
        event = await make_event()

        result = await EventService(db_session).apply_ops(
            event.id,
            ops(
                {"op": "add_table", "table": {"id": "t1", "capacity": 4}},
                {"op": "add_guest", "guest": {"id": "g1", "name": "Ada"}},
                {"op": "assign_guest_seat", "guest_id": "g1", "table_id": "t1", "seat_no": 2},
                version=0,
            ),
            owner_id,
        )

        assert result.version == 1
        assert result.applied == 3
        stored = await read_event(event.id)
        assert stored.autosave_version == 1
        assert stored.plan_data["tables"][0]["seats"] == [{"seat_no": 2, "guest_id": "g1"}]

    async def test_failing_op_rejects_whole_batch(self, db_session, make_event, build_plan, owner_id, read_event):
        plan = build_plan(("t1", 2), guests=["g1", "g2"])
        plan["tables"][0]["seats"] = [{"seat_no": 1, "guest_id": "g1"}]
        event = await make_event(plan=plan)

        with pytest.raises(SeatOccupiedError):
            await EventService(db_session).apply_ops(
                event.id,
                ops(
                    {"op": "add_guest", "guest": {"id": "g3", "name": "Linus"}},
                    {"op": "assign_guest_seat", "guest_id": "g2", "table_id": "t1", "seat_no": 1},
                ),
                owner_id,
            )

        stored = await read_event(event.id)
        assert stored.autosave_version == 0
        assert len(stored.plan_data["guests"]) == 2

    async def test_capacity_below_occupied_seat(self, db_session, make_event, build_plan, owner_id):
        plan = build_plan(("t1", 6), guests=["g1"])
        plan["tables"][0]["seats"] = [{"seat_no": 5, "guest_id": "g1"}]
        event = await make_event(plan=plan)

        with pytest.raises(ValidationError):
            await EventService(db_session).apply_ops(
                event.id,
                ops({"op": "update_table", "id": "t1", "patch": {"capacity": 4}}),
                owner_id,
            )

    async def test_table_removal_snapshots_prior_plan(
        self, db_session, make_event, build_plan, owner_id, read_event
    ):
        plan = build_plan(("t1", 4), ("t2", 4), guests=["g1"])
        plan["tables"][0]["seats"] = [{"seat_no": 1, "guest_id": "g1"}]
        event = await make_event(plan=plan)

        result = await EventService(db_session).apply_ops(
            event.id, ops({"op": "remove_table", "id": "t1"}), owner_id
        )

        assert [t.id for t in result.plan_data.tables] == ["t2"]
        snapshots = await SnapshotManager(db_session).list_snapshots(event.id, owner_id)
        assert len(snapshots) == 1
        assert snapshots[0].label == "Before table removal"
        assert snapshots[0].plan_data == plan

    async def test_stale_batch(self, db_session, make_event, owner_id):
        event = await make_event(version=4)
        with pytest.raises(VersionConflictError):
            await EventService(db_session).apply_ops(
                event.id,
                ops({"op": "add_guest", "guest": {"name": "Late"}}, version=3),
                owner_id,
            )

    async def test_each_op_is_audited(self, db_session, make_event, owner_id):
        event = await make_event()
        await EventService(db_session).apply_ops(
            event.id,
            ops(
                {"op": "add_table", "table": {"id": "t1", "capacity": 4}},
                {"op": "add_guest", "guest": {"id": "g1", "name": "Ada"}},
            ),
            owner_id,
        )

        entries = await AuditService(db_session).list_entries(event.id)
        actions = {e.action_type for e in entries}
        assert actions == {AuditAction.TABLE_CREATE, AuditAction.GUEST_ADD}

    async def test_audit_log_is_owner_only(self, db_session, make_event, other_id):
        event = await make_event()
        with pytest.raises(AuthorizationError):
            await EventService(db_session).audit_log(event.id, other_id)


class FailingSession:
    """Session stand-in whose commit always fails"""

    def __init__(self):
        self.rolled_back = False

    def add(self, entry):
        self.entry = entry

    async def commit(self):
        raise RuntimeError("disk full")

    async def rollback(self):
        self.rolled_back = True


@pytest.mark.asyncio
async def test_audit_failure_is_swallowed(owner_id):
    session = FailingSession()
    result = await AuditService(session).record(uuid4(), owner_id, AuditAction.GUEST_ADD, {"guest_id": "g1"})
    assert result is None
    assert session.rolled_back
