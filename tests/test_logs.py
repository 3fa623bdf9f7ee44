"""
Tests for the real-time log channel.
"""

import asyncio
import time

import httpx
import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.config import settings
from datalive.core.logging import LogEventBuffer, log_buffer
from tests.conftest import OWNER_ID, make_api, make_project

pytestmark = pytest.mark.asyncio


def entry(message: str, module: str = "endpoint_executor", level: str = "info", owner_id: str | None = None) -> dict:
    metadata = {"owner_id": owner_id} if owner_id else {}
    return {
        "timestamp": "2026-01-01T00:00:00+00:00",
        "level": level,
        "module": module,
        "message": message,
        "metadata": metadata,
    }


class TestBuffer:
    async def test_bounded_and_filtered(self) -> None:
        buffer = LogEventBuffer(maxlen=3)
        for i in range(5):
            buffer.publish(entry(f"e{i}", level="error" if i % 2 else "info"))

        assert [e["message"] for e in buffer.recent()] == ["e2", "e3", "e4"]
        assert [e["message"] for e in buffer.recent(level="error")] == ["e3"]
        assert [e["message"] for e in buffer.recent(limit=1)] == ["e4"]

    async def test_subscribers_receive_new_entries(self) -> None:
        buffer = LogEventBuffer()
        queue = buffer.subscribe()
        buffer.publish(entry("live"))
        assert (await queue.get())["message"] == "live"

        buffer.unsubscribe(queue)
        buffer.publish(entry("after"))
        assert queue.empty()

    async def test_publish_from_worker_thread_reaches_subscriber(self) -> None:
        buffer = LogEventBuffer()
        queue = buffer.subscribe()

        await asyncio.to_thread(buffer.publish, entry("from thread"))

        received = await asyncio.wait_for(queue.get(), timeout=1)
        assert received["message"] == "from thread"
        assert [e["message"] for e in buffer.recent()] == ["from thread"]
        buffer.unsubscribe(queue)


class TestRecentEndpoint:
    async def test_admin_sees_everything_newest_first(self, client: AsyncClient) -> None:
        log_buffer.clear()
        log_buffer.publish(entry("first", owner_id="a"))
        log_buffer.publish(entry("second", owner_id="b"))

        response = await client.get("/api/v1/logs/recent")

        messages = [e["message"] for e in response.json()["data"]]
        assert messages[:2] == ["second", "first"]

    async def test_module_filter(self, client: AsyncClient) -> None:
        log_buffer.clear()
        log_buffer.publish(entry("x", module="auth_detector"))
        log_buffer.publish(entry("y", module="batch_executor"))

        response = await client.get("/api/v1/logs/recent?module=auth_detector")

        assert [e["message"] for e in response.json()["data"]] == ["x"]

    async def test_non_admin_only_sees_own_entries(self, client: AsyncClient, monkeypatch) -> None:
        secret = "test-jwt-secret-that-is-long-enough-for-hs256"
        monkeypatch.setattr(settings, "jwt_secret", secret)
        token = jwt.encode({"sub": "alice", "exp": int(time.time()) + 60}, secret, algorithm="HS256")
        log_buffer.clear()
        log_buffer.publish(entry("mine", owner_id="alice"))
        log_buffer.publish(entry("theirs", owner_id="bob"))

        response = await client.get("/api/v1/logs/recent", headers={"Authorization": f"Bearer {token}"})

        assert [e["message"] for e in response.json()["data"]] == ["mine"]

    async def test_service_events_reach_the_channel(
        self, client: AsyncClient, seed: AsyncSession, remote_api, fake_provider
    ) -> None:
        api = await make_api(seed, await make_project(seed), [{"method": "GET", "path": "/orders"}])
        remote_api.add("GET", "/orders", httpx.Response(200, json=[]))
        fake_provider.queue("No orders.")
        log_buffer.clear()

        executed = await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 0})
        assert executed.status_code == 200

        response = await client.get("/api/v1/logs/recent?module=endpoint_executor")

        events = response.json()["data"]
        starts = [e for e in events if e["message"] == "endpoint_execution_start"]
        assert starts
        assert starts[0]["metadata"]["owner_id"] == OWNER_ID
        assert starts[0]["metadata"]["api_id"] == api.id
