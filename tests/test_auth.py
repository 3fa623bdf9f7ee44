"""
Tests for bearer-token authentication.
"""

import time

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from httpx import AsyncClient

from datalive.core.auth import MOCK_USER_ID, get_current_user
from datalive.core.config import settings

pytestmark = pytest.mark.asyncio

SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"


def token(sub: str = "user-1", roles: list[str] | None = None, expires_in: int = 3600) -> str:
    claims = {"sub": sub, "email": f"{sub}@example.com", "exp": int(time.time()) + expires_in}
    if roles is not None:
        claims["roles"] = roles
    return jwt.encode(claims, SECRET, algorithm="HS256")


def bearer(value: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=value)


@pytest.fixture
def auth_enabled(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", SECRET)


class TestMockMode:
    async def test_mock_user_without_secret(self) -> None:
        user = await get_current_user(None)
        assert user.id == MOCK_USER_ID
        assert user.is_admin is True

    async def test_production_without_secret_is_rejected(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "environment", "production")
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 503


class TestTokens:
    async def test_valid_token(self, auth_enabled) -> None:
        user = await get_current_user(bearer(token(roles=["USER"])))
        assert user.id == "user-1"
        assert user.email == "user-1@example.com"
        assert user.is_admin is False

    async def test_single_role_string(self, auth_enabled) -> None:
        user = await get_current_user(bearer(jwt.encode({"sub": "a", "roles": "admin"}, SECRET, algorithm="HS256")))
        assert user.is_admin is True

    async def test_missing_header(self, auth_enabled) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401

    async def test_expired_token(self, auth_enabled) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(bearer(token(expires_in=-3600)))
        assert exc_info.value.detail == "Token has expired"

    async def test_wrong_signature(self, auth_enabled) -> None:
        forged = jwt.encode({"sub": "x"}, "another-secret-of-sufficient-length-000", algorithm="HS256")
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(bearer(forged))
        assert exc_info.value.status_code == 401

    async def test_missing_subject(self, auth_enabled) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(bearer(jwt.encode({"email": "x"}, SECRET, algorithm="HS256")))


class TestProtectedRoutes:
    async def test_request_without_token_is_rejected(self, client: AsyncClient, auth_enabled) -> None:
        response = await client.get("/api/v1/projects")
        assert response.status_code == 401

    async def test_token_scopes_projects(self, client: AsyncClient, auth_enabled) -> None:
        alice = {"Authorization": f"Bearer {token('alice')}"}
        bob = {"Authorization": f"Bearer {token('bob')}"}

        created = await client.post("/api/v1/projects", json={"name": "Alice's"}, headers=alice)
        project_id = created.json()["data"]["id"]

        assert (await client.get(f"/api/v1/projects/{project_id}", headers=alice)).status_code == 200
        assert (await client.get(f"/api/v1/projects/{project_id}", headers=bob)).status_code == 404
        assert (await client.get("/api/v1/projects", headers=bob)).json()["data"] == []
