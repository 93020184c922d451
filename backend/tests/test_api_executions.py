"""Execution API endpoint tests."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from areahub.services.notifier import drain_notifications

BASE = "/api/v1/executions"


async def _create(client: AsyncClient, area, **body) -> dict:
    response = await client.post(f"{BASE}/", json={"area_id": str(area.id), **body})
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateExecution:
    """POST /executions/"""

    @pytest.mark.asyncio
    async def test_create(self, async_client: AsyncClient, area, notifier) -> None:
        data = await _create(async_client, area, trigger_data={"repo": "octo/hello"})
        await drain_notifications()

        assert data["status"] == "pending"
        assert data["trigger_data"] == {"repo": "octo/hello"}
        assert data["started_at"].startswith("2024-01-01T12:00:00")
        assert data["execution_time_ms"] is None
        assert [call[0] for call in notifier.calls] == [area.id]

    @pytest.mark.asyncio
    async def test_unknown_area(self, async_client: AsyncClient) -> None:
        response = await async_client.post(f"{BASE}/", json={"area_id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_invalid_status(self, async_client: AsyncClient, area) -> None:
        response = await async_client.post(
            f"{BASE}/", json={"area_id": str(area.id), "status": "exploded"}
        )

        assert response.status_code == 422


class TestLifecycleEndpoints:
    """Named transitions over HTTP."""

    @pytest.mark.asyncio
    async def test_start_then_complete(self, async_client: AsyncClient, area, clock) -> None:
        created = await _create(async_client, area)

        started = await async_client.post(f"{BASE}/{created['id']}/start")
        clock.advance(minutes=1, seconds=30)
        completed = await async_client.post(
            f"{BASE}/{created['id']}/complete",
            json={"execution_result": {"message_id": "987654321"}},
        )

        assert started.json()["status"] == "running"
        body = completed.json()
        assert body["status"] == "success"
        assert body["execution_result"] == {"message_id": "987654321"}
        assert body["execution_time_ms"] == 90000

    @pytest.mark.asyncio
    async def test_complete_without_body(self, async_client: AsyncClient, area) -> None:
        created = await _create(async_client, area)

        response = await async_client.post(f"{BASE}/{created['id']}/complete")

        assert response.status_code == 200
        assert response.json()["execution_result"] is None

    @pytest.mark.asyncio
    async def test_fail_requires_message(self, async_client: AsyncClient, area) -> None:
        created = await _create(async_client, area)

        missing = await async_client.post(f"{BASE}/{created['id']}/fail", json={})
        failed = await async_client.post(
            f"{BASE}/{created['id']}/fail", json={"error_message": "Discord webhook returned 404"}
        )

        assert missing.status_code == 422
        assert failed.json()["status"] == "failed"
        assert failed.json()["error_message"] == "Discord webhook returned 404"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("action", "expected"), [("cancel", "cancelled"), ("skip", "skipped")])
    async def test_cancel_and_skip(
        self, async_client: AsyncClient, area, action, expected
    ) -> None:
        created = await _create(async_client, area)

        response = await async_client.post(f"{BASE}/{created['id']}/{action}")

        assert response.json()["status"] == expected
        assert response.json()["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_unknown_execution(self, async_client: AsyncClient) -> None:
        response = await async_client.post(f"{BASE}/{uuid4()}/start")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_patch_terminal_status(self, async_client: AsyncClient, area, clock) -> None:
        created = await _create(async_client, area)
        clock.advance(seconds=2)

        response = await async_client.patch(
            f"{BASE}/{created['id']}", json={"status": "success"}
        )

        assert response.json()["execution_time_ms"] == 2000

    @pytest.mark.asyncio
    async def test_get_and_delete(self, async_client: AsyncClient, area) -> None:
        created = await _create(async_client, area)

        fetched = await async_client.get(f"{BASE}/{created['id']}")
        deleted = await async_client.delete(f"{BASE}/{created['id']}")
        missing = await async_client.get(f"{BASE}/{created['id']}")

        assert fetched.json()["id"] == created["id"]
        assert deleted.status_code == 204
        assert missing.status_code == 404


class TestQueryEndpoints:
    """Collection queries, stats and cleanup."""

    @pytest.mark.asyncio
    async def test_lists(self, async_client: AsyncClient, area, other_area, clock) -> None:
        first = await _create(async_client, area)
        clock.advance(seconds=1)
        second = await _create(async_client, other_area)
        await async_client.post(f"{BASE}/{second['id']}/fail", json={"error_message": "x"})

        everything = (await async_client.get(f"{BASE}/")).json()
        recent = (await async_client.get(f"{BASE}/recent", params={"limit": 1})).json()
        by_area = (await async_client.get(f"{BASE}/area/{area.id}")).json()
        failed = (await async_client.get(f"{BASE}/failed")).json()
        pending = (await async_client.get(f"{BASE}/status/pending")).json()

        assert [r["id"] for r in everything] == [second["id"], first["id"]]
        assert [r["id"] for r in recent] == [second["id"]]
        assert [r["id"] for r in by_area] == [first["id"]]
        assert [r["id"] for r in failed] == [second["id"]]
        assert [r["id"] for r in pending] == [first["id"]]

    @pytest.mark.asyncio
    async def test_long_running(self, async_client: AsyncClient, area, clock) -> None:
        stale = await _create(
            async_client,
            area,
            status="running",
            started_at=(clock.now - timedelta(hours=1)).isoformat(),
        )
        await _create(async_client, area, status="running")

        response = await async_client.get(
            f"{BASE}/long-running", params={"threshold_minutes": 30}
        )

        assert [r["id"] for r in response.json()] == [stale["id"]]

    @pytest.mark.asyncio
    async def test_stats(self, async_client: AsyncClient, area, other_area, clock) -> None:
        done = await _create(async_client, area)
        await _create(async_client, other_area)
        clock.advance(seconds=4)
        await async_client.post(f"{BASE}/{done['id']}/complete")

        overall = (await async_client.get(f"{BASE}/stats")).json()
        scoped = (await async_client.get(f"{BASE}/stats", params={"area_id": str(area.id)})).json()

        assert overall["total"] == 2
        assert overall["completed"] == 1
        assert overall["pending"] == 1
        assert overall["avg_execution_time_ms"] == 4000
        assert scoped["total"] == 1
        assert scoped["pending"] == 0

    @pytest.mark.asyncio
    async def test_cleanup(self, async_client: AsyncClient, area, clock) -> None:
        old = await _create(async_client, area)
        await async_client.post(f"{BASE}/{old['id']}/skip")
        clock.advance(days=10)

        response = await async_client.post(f"{BASE}/cleanup", params={"older_than_days": 7})

        assert response.json() == {"deleted": 1, "older_than_days": 7}

    @pytest.mark.asyncio
    async def test_delete_by_area(self, async_client: AsyncClient, area) -> None:
        await _create(async_client, area)
        await _create(async_client, area)

        response = await async_client.delete(f"{BASE}/area/{area.id}")

        assert response.json()["deleted"] == 2
