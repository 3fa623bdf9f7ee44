"""
Tests for project endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import make_api, make_project

pytestmark = pytest.mark.asyncio


class TestProjectEndpoints:
    async def test_list_projects_empty(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/projects")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"] == []
        assert data["meta"]["total"] == 0

    async def test_create_project_normalizes_industry(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/projects",
            json={"name": "Shop", "description": "Storefront APIs", "industry": "ECommerce"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Shop"
        assert data["industry"] == "ecommerce"
        assert data["id"] > 0

    async def test_unknown_industry_becomes_general(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/projects", json={"name": "X", "industry": "aerospace"})
        assert response.json()["data"]["industry"] == "general"

    async def test_create_requires_name(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/projects", json={"name": ""})
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    async def test_get_project_with_counts(self, client: AsyncClient, seed: AsyncSession) -> None:
        project = await make_project(seed)
        await make_api(seed, project)
        await make_api(seed, project)

        response = await client.get(f"/api/v1/projects/{project.id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["apis_count"] == 2
        assert data["documents_count"] == 0

    async def test_foreign_project_is_not_found(self, client: AsyncClient, seed: AsyncSession) -> None:
        project = await make_project(seed, owner_id="someone-else")

        response = await client.get(f"/api/v1/projects/{project.id}")
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["type"] == "not_found_error"
        assert error["message"] == f"Project {project.id} not found"

    async def test_update_project(self, client: AsyncClient) -> None:
        created = await client.post("/api/v1/projects", json={"name": "Old"})
        project_id = created.json()["data"]["id"]

        response = await client.patch(f"/api/v1/projects/{project_id}", json={"name": "New", "industry": "telco"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "New"
        assert data["industry"] == "telco"

    async def test_delete_project(self, client: AsyncClient) -> None:
        created = await client.post("/api/v1/projects", json={"name": "Temp"})
        project_id = created.json()["data"]["id"]

        response = await client.delete(f"/api/v1/projects/{project_id}")
        assert response.status_code == 200
        assert (await client.get(f"/api/v1/projects/{project_id}")).status_code == 404
