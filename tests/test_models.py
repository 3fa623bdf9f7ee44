"""
Tests for model catalog and preference endpoints.
"""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestModelEndpoints:
    async def test_enabled_models_follow_configured_providers(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/models")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["providers"] == ["google"]
        assert data["default"] == "gemini-2.5-flash"
        enabled = [m for m in data["models"] if m["enabled"]]
        assert enabled
        assert all(m["provider"] == "google" for m in enabled)

    async def test_catalog_lists_everything(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/models/catalog")
        assert response.json()["meta"]["total"] == 12

    async def test_industries(self, client: AsyncClient) -> None:
        data = (await client.get("/api/v1/models/industries")).json()["data"]
        keys = [d["key"] for d in data]
        assert "fintech" in keys
        assert "general" not in keys

    async def test_preference_defaults_then_updates(self, client: AsyncClient) -> None:
        initial = (await client.get("/api/v1/models/preferences")).json()["data"]
        assert initial["model"] == "gemini-2.5-flash"

        response = await client.put("/api/v1/models/preferences", json={"model": "gpt-4o"})
        assert response.status_code == 200
        assert response.json()["data"]["model"] == "gpt-4o"

        updated = (await client.get("/api/v1/models/preferences")).json()["data"]
        assert updated["model"] == "gpt-4o"
        assert updated["descriptor"]["provider"] == "openai"

    async def test_unknown_model_is_rejected(self, client: AsyncClient) -> None:
        response = await client.put("/api/v1/models/preferences", json={"model": "gpt-17-ultra"})
        assert response.status_code == 400
