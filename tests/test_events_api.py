"""
HTTP tests for the event, lock, seat and snapshot endpoints
"""

import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient

from app.models.snapshot import Snapshot
from app.services.lock_service import utcnow


@pytest.mark.api
@pytest.mark.asyncio
class TestEventEndpoints:
    """Event CRUD over HTTP"""

    async def test_create_and_get(self, client: AsyncClient, auth_headers, owner_id):
        response = await client.post(
            "/api/v1/events/",
            json={"name": "Gala", "event_date": "2026-06-01", "grid_rows": 10, "grid_cols": 12},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.headers["ETag"] == '"0"'
        data = response.json()
        assert data["owner_id"] == str(owner_id)
        assert data["autosave_version"] == 0
        assert data["grid"] == {"rows": 10, "cols": 12}
        assert data["plan_data"]["tables"] == []
        assert data["lock"] == {"held_by": None, "expires_at": None}

        response = await client.get(f"/api/v1/events/{data['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Gala"

    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/events/")
        assert response.status_code == 401

    async def test_invalid_body(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/events/",
            json={"name": "", "grid_rows": 0, "grid_cols": 5},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_stranger_gets_forbidden_envelope(self, client: AsyncClient, make_event, other_headers):
        event = await make_event()
        response = await client.get(f"/api/v1/events/{event.id}", headers=other_headers)
        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "FORBIDDEN"

    async def test_list(self, client: AsyncClient, make_event, auth_headers):
        await make_event()
        await make_event()
        response = await client.get("/api/v1/events/?limit=10", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2
        assert "plan_data" not in response.json()[0]

    async def test_patch_with_stale_if_match(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event(version=8)
        response = await client.patch(
            f"/api/v1/events/{event.id}",
            json={"name": "Renamed"},
            headers={**auth_headers, "If-Match": '"7"'},
        )
        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "VERSION_CONFLICT"
        assert error["details"] == {"expected_version": 7, "actual_version": 8}

    async def test_patch_with_current_if_match(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event(version=8)
        response = await client.patch(
            f"/api/v1/events/{event.id}",
            json={"name": "Renamed"},
            headers={**auth_headers, "If-Match": 'W/"8"'},
        )
        assert response.status_code == 200
        assert response.headers["ETag"] == '"9"'
        assert response.json()["name"] == "Renamed"

    @pytest.mark.parametrize("field", ["name", "grid_rows", "grid_cols"])
    async def test_patch_rejects_null(self, client: AsyncClient, make_event, auth_headers, read_event, count_rows, field):
        event = await make_event()
        response = await client.patch(
            f"/api/v1/events/{event.id}",
            json={field: None},
            headers=auth_headers,
        )
        assert response.status_code == 422

        stored = await read_event(event.id)
        assert stored.autosave_version == 0
        assert await count_rows(Snapshot, event.id) == 0

    async def test_bad_if_match(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()
        response = await client.patch(
            f"/api/v1/events/{event.id}",
            json={"name": "Renamed"},
            headers={**auth_headers, "If-Match": "latest"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_delete_and_undelete(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()

        response = await client.delete(f"/api/v1/events/{event.id}", headers=auth_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/events/{event.id}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"

        response = await client.post(f"/api/v1/events/{event.id}/undelete", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["autosave_version"] == 2
        assert response.json()["deleted_at"] is None


@pytest.mark.api
@pytest.mark.asyncio
class TestPlanAndSeatEndpoints:
    """Plan edits and seat assignment over HTTP"""

    async def test_plan_ops_then_assign(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()

        response = await client.post(
            f"/api/v1/events/{event.id}/plan/ops",
            json={
                "version": 0,
                "ops": [
                    {"op": "add_table", "table": {"id": "t1", "shape": "long", "capacity": 3}},
                    {"op": "add_guest", "guest": {"id": "g1", "name": "Ada"}},
                    {"op": "add_guest", "guest": {"id": "g2", "name": "Grace"}},
                ],
            },
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["version"] == 1
        assert response.headers["ETag"] == '"1"'

        response = await client.post(
            f"/api/v1/events/{event.id}/seats/assign",
            json={"guest_id": "g1", "table_id": "t1"},
            headers={**auth_headers, "If-Match": "1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["version"] == 2
        assert 1 <= data["seat_no"] <= 3

    async def test_unknown_op(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()
        response = await client.post(
            f"/api/v1/events/{event.id}/plan/ops",
            json={"ops": [{"op": "paint_table", "id": "t1"}]},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_table_full(self, client: AsyncClient, make_event, build_plan, auth_headers):
        plan = build_plan(("t1", 1), guests=["g1", "g2"])
        plan["tables"][0]["seats"] = [{"seat_no": 1, "guest_id": "g1"}]
        event = await make_event(plan=plan)

        response = await client.post(
            f"/api/v1/events/{event.id}/seats/assign",
            json={"guest_id": "g2", "table_id": "t1"},
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TABLE_FULL"

    async def test_foreign_lease_blocks_owner(
        self, client: AsyncClient, make_event, build_plan, auth_headers, other_id
    ):
        event = await make_event(
            plan=build_plan(("t1", 4), guests=["g1"]),
            lock_held_by=other_id,
            lock_expires_at=utcnow() + timedelta(minutes=10),
        )
        response = await client.post(
            f"/api/v1/events/{event.id}/seats/assign",
            json={"guest_id": "g1", "table_id": "t1"},
            headers=auth_headers,
        )
        assert response.status_code == 423
        assert response.json()["error"]["code"] == "LOCK_HELD_BY_OTHER"


@pytest.mark.api
@pytest.mark.asyncio
class TestLockEndpoints:
    """Lease endpoints"""

    async def test_acquire_status_release(self, client: AsyncClient, make_event, auth_headers, owner_id):
        event = await make_event()

        response = await client.post(
            f"/api/v1/events/{event.id}/lock", json={"minutes": 15}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["acquired"] is True
        assert response.json()["held_by"] == str(owner_id)

        response = await client.get(f"/api/v1/events/{event.id}/lock", headers=auth_headers)
        assert response.json()["held_by"] == str(owner_id)

        response = await client.delete(f"/api/v1/events/{event.id}/lock", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["released"] is True

        response = await client.delete(f"/api/v1/events/{event.id}/lock", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NOT_LOCK_OWNER"

    async def test_acquire_without_body_uses_default(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()
        before = datetime.now(timezone.utc)

        response = await client.post(f"/api/v1/events/{event.id}/lock", headers=auth_headers)

        assert response.status_code == 200
        expires_at = datetime.fromisoformat(response.json()["expires_at"])
        assert before + timedelta(minutes=9) < expires_at <= datetime.now(timezone.utc) + timedelta(minutes=10)

    async def test_acquire_held_by_other(self, client: AsyncClient, make_event, auth_headers, other_id):
        event = await make_event(lock_held_by=other_id, lock_expires_at=utcnow() + timedelta(minutes=10))

        response = await client.post(
            f"/api/v1/events/{event.id}/lock", json={"minutes": 5}, headers=auth_headers
        )

        assert response.status_code == 409
        data = response.json()
        assert data["acquired"] is False
        assert data["held_by"] == str(other_id)

    async def test_duration_out_of_range(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()
        response = await client.post(
            f"/api/v1/events/{event.id}/lock", json={"minutes": 500}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "minutes"}


@pytest.mark.api
@pytest.mark.asyncio
class TestSnapshotEndpoints:
    """Snapshot history over HTTP"""

    async def test_snapshot_restore_and_audit(self, client: AsyncClient, make_event, build_plan, auth_headers):
        event = await make_event(plan=build_plan(("t1", 4), guests=["g1"]))

        response = await client.post(
            f"/api/v1/events/{event.id}/snapshots", json={"label": "Clean"}, headers=auth_headers
        )
        assert response.status_code == 201
        snapshot_id = response.json()["id"]
        assert response.json()["is_manual"] is True

        response = await client.post(
            f"/api/v1/events/{event.id}/seats/assign",
            json={"guest_id": "g1", "table_id": "t1"},
            headers=auth_headers,
        )
        assert response.status_code == 200

        response = await client.post(
            f"/api/v1/events/{event.id}/snapshots/{snapshot_id}/restore", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["version"] == 2

        response = await client.get(f"/api/v1/events/{event.id}/snapshots", headers=auth_headers)
        labels = [s["label"] for s in response.json()]
        assert labels == [f"Pre-restore of {snapshot_id}", "Clean"]

        response = await client.get(
            f"/api/v1/events/{event.id}/snapshots/{snapshot_id}", headers=auth_headers
        )
        assert response.json()["plan_data"]["tables"][0]["seats"] == []

        response = await client.get(f"/api/v1/events/{event.id}/audit-log", headers=auth_headers)
        actions = {entry["action_type"] for entry in response.json()}
        assert actions == {"snapshot_created", "seat_assigned", "snapshot_restored"}

    async def test_restore_with_stale_version(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event(version=8)
        response = await client.post(f"/api/v1/events/{event.id}/snapshots", headers=auth_headers)
        snapshot_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/events/{event.id}/snapshots/{snapshot_id}/restore",
            json={"expected_version": 7},
            headers=auth_headers,
        )
        assert response.status_code == 409

        response = await client.get(f"/api/v1/events/{event.id}/snapshots", headers=auth_headers)
        assert len(response.json()) == 1

    async def test_restore_from_other_event(self, client: AsyncClient, make_event, auth_headers):
        event_a = await make_event()
        event_b = await make_event()
        response = await client.post(f"/api/v1/events/{event_b.id}/snapshots", headers=auth_headers)
        snapshot_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/events/{event_a.id}/snapshots/{snapshot_id}/restore", headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SNAPSHOT_EVENT_MISMATCH"


@pytest.mark.api
@pytest.mark.asyncio
class TestHealthEndpoints:
    """Health and metrics"""

    async def test_live(self, client: AsyncClient):
        response = await client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    async def test_ready(self, client: AsyncClient):
        response = await client.get("/api/v1/health/ready")
        assert response.json()["checks"]["database"] is True

    async def test_engine_metrics(self, client: AsyncClient, make_event, auth_headers):
        event = await make_event()
        await client.post(f"/api/v1/events/{event.id}/lock", json={"minutes": 5}, headers=auth_headers)

        response = await client.get("/api/v1/health/metrics")
        assert response.status_code == 200
        assert response.json()["locks"]["acquired"] == 1
