"""
Tests for live execution endpoints.
"""

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import make_api, make_project

pytestmark = pytest.mark.asyncio

ENDPOINTS = [
    {"method": "GET", "path": "/orders", "description": "List orders"},
    {"method": "GET", "path": "/customers"},
]


class TestExecute:
    async def test_execute_by_index(self, client: AsyncClient, seed: AsyncSession, remote_api, fake_provider) -> None:
        api = await make_api(seed, await make_project(seed), ENDPOINTS)
        remote_api.add("GET", "/orders", httpx.Response(200, json={"orders": []}))
        fake_provider.queue("No orders yet.")

        response = await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 0})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == 200
        assert body["data"]["explanation"] == "No orders yet."
        assert body["data"]["execution"]["endpoint_index"] == 0

    async def test_remote_error_is_reported_not_raised(self, client: AsyncClient, seed: AsyncSession, remote_api) -> None:
        api = await make_api(seed, await make_project(seed), ENDPOINTS)
        remote_api.add("GET", "/customers", httpx.Response(500, json={"error": "boom"}))

        response = await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["execution"]["error_message"] == "boom"

    async def test_explicit_endpoint(self, client: AsyncClient, seed: AsyncSession, remote_api) -> None:
        api = await make_api(seed, await make_project(seed), [])
        remote_api.add("GET", "/ping", httpx.Response(200, json={"pong": True}))

        response = await client.post(
            "/api/v1/executions/execute",
            json={"api_id": api.id, "endpoint": {"method": "get", "path": "/ping"}},
        )

        assert response.json()["data"]["response"] == {"pong": True}

    async def test_index_out_of_range(self, client: AsyncClient, seed: AsyncSession) -> None:
        api = await make_api(seed, await make_project(seed), ENDPOINTS)

        response = await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 5})
        assert response.status_code == 400

    async def test_endpoint_required(self, client: AsyncClient, seed: AsyncSession) -> None:
        api = await make_api(seed, await make_project(seed), ENDPOINTS)

        response = await client.post("/api/v1/executions/execute", json={"api_id": api.id})
        assert response.status_code == 400

    async def test_foreign_api(self, client: AsyncClient, seed: AsyncSession) -> None:
        api = await make_api(seed, await make_project(seed, owner_id="someone-else"), ENDPOINTS)

        response = await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 0})
        assert response.status_code == 404


class TestExecuteAll:
    async def test_summary(self, client: AsyncClient, seed: AsyncSession, remote_api) -> None:
        api = await make_api(seed, await make_project(seed), ENDPOINTS)
        remote_api.add("GET", "/orders", httpx.Response(200, json=[]))

        response = await client.post("/api/v1/executions/execute-all", json={"api_id": api.id})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"] == {"total": 2, "succeeded": 2, "failed": 0}
        assert [r["endpoint"] for r in data["results"]] == ["/orders", "/customers"]
        assert data["results"][1]["result"]["status"] == 404


class TestHistory:
    async def test_history_newest_first(self, client: AsyncClient, seed: AsyncSession, remote_api) -> None:
        project = await make_project(seed)
        api = await make_api(seed, project, ENDPOINTS)
        remote_api.add("GET", "/orders", httpx.Response(200, json=[]))
        remote_api.add("GET", "/customers", httpx.Response(200, json=[]))

        await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 0})
        await client.post("/api/v1/executions/execute", json={"api_id": api.id, "endpoint_index": 1})

        by_api = (await client.get(f"/api/v1/executions/history?api_id={api.id}")).json()["data"]
        assert [e["endpoint"] for e in by_api] == ["/customers", "/orders"]

        by_project = (await client.get(f"/api/v1/executions/history?project_id={project.id}&limit=1")).json()
        assert by_project["meta"]["total"] == 1
        assert by_project["data"][0]["endpoint"] == "/customers"

    async def test_history_requires_scope(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/executions/history")
        assert response.status_code == 400
