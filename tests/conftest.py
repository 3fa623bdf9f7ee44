"""
Pytest configuration and fixtures for DataLive tests.

Tests run against in-memory SQLite, a fake LLM provider and an
``httpx.MockTransport`` standing in for the documented remote APIs.
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key"
os.environ.pop("JWT_SECRET", None)
for _key in ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "QWEN_API_KEY", "DEEPSEEK_API_KEY"):
    os.environ.pop(_key, None)

from collections.abc import AsyncGenerator, Callable  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from datalive.api.main import app  # noqa: E402
from datalive.core.exceptions import ProviderError  # noqa: E402
from datalive.core.models import Provider  # noqa: E402
from datalive.db.database import Base, async_session_maker, engine  # noqa: E402
from datalive.services.ai.catalog import ModelCatalog  # noqa: E402
from datalive.services.ai.interface import GenerationOptions, ProviderAdapter  # noqa: E402
from datalive.services.ai.orchestrator import AIOrchestrator  # noqa: E402
from datalive.services.ai.providers import ProviderRegistry  # noqa: E402


class FakeAdapter(ProviderAdapter):
    """Scripted provider: returns queued replies in order, raising queued exceptions."""

    def __init__(self, provider: Provider = Provider.GOOGLE, replies: list[Any] | None = None):
        self.provider = provider
        self.replies: list[Any] = list(replies or [])
        self.calls: list[dict[str, Any]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def generate(self, model_id: str, prompt: str, options: GenerationOptions) -> str:
        self.calls.append({"model": model_id, "prompt": prompt, "options": options})
        if not self.replies:
            raise ProviderError("no scripted reply", provider=self.provider.value, model=model_id)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class MemoryPreferences:
    def __init__(self, initial: dict[str, str] | None = None):
        self.values = dict(initial or {})

    async def get(self, owner_id: str) -> str | None:
        return self.values.get(owner_id)

    async def set(self, owner_id: str, model_id: str) -> None:
        self.values[owner_id] = model_id


class RemoteAPI:
    """Route table for ``httpx.MockTransport``: (METHOD, path) -> handler or Response."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response] | httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response: Any) -> None:
        self.routes[(method.upper(), path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(handler, httpx.Response):
            return handler
        return handler(request)


async def _create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _drop_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_provider() -> FakeAdapter:
    return FakeAdapter(Provider.GOOGLE)


@pytest.fixture
def registry(fake_provider: FakeAdapter) -> ProviderRegistry:
    return ProviderRegistry({Provider.GOOGLE: fake_provider})


@pytest.fixture
def catalog(registry: ProviderRegistry) -> ModelCatalog:
    return ModelCatalog().with_available_providers(registry.available())


@pytest.fixture
def orchestrator(catalog: ModelCatalog, registry: ProviderRegistry) -> AIOrchestrator:
    return AIOrchestrator(catalog, registry, MemoryPreferences(), timeout=5.0)


@pytest.fixture
def remote_api() -> RemoteAPI:
    return RemoteAPI()


@pytest_asyncio.fixture
async def http_client(remote_api: RemoteAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(remote_api)) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    await _create_tables()

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    await _drop_tables()


@pytest_asyncio.fixture(scope="function")
async def client(
    registry: ProviderRegistry,
    catalog: ModelCatalog,
    http_client: httpx.AsyncClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing with a fresh database."""
    await _create_tables()

    original = (app.state.providers, app.state.catalog, app.state.http_client)
    app.state.providers = registry
    app.state.catalog = catalog
    app.state.http_client = http_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.state.providers, app.state.catalog, app.state.http_client = original
    await _drop_tables()


@pytest_asyncio.fixture(scope="function")
async def seed(client: AsyncClient) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging rows directly, alongside the API client."""
    async with async_session_maker() as session:
        yield session


# =============================================================================
# Row factories
# =============================================================================

OWNER_ID = "mock-user-id"


async def make_project(
    db: AsyncSession,
    owner_id: str = OWNER_ID,
    name: str = "Payments",
    industry: str = "fintech",
):
    from datalive.db import ProjectModel

    project = ProjectModel(owner_id=owner_id, name=name, industry=industry)
    db.add(project)
    await db.commit()
    return project


async def make_api(
    db: AsyncSession,
    project,
    endpoints: list[dict[str, Any]] | None = None,
    base_url: str = "https://api.example.com",
    auth_type: str | None = None,
    auth_details: dict[str, Any] | None = None,
    document_id: int | None = None,
):
    from datalive.db import DiscoveredAPIModel

    api = DiscoveredAPIModel(
        project_id=project.id,
        document_id=document_id,
        name="Example API",
        base_url=base_url,
        auth_type=auth_type,
        auth_details=auth_details,
        endpoints=endpoints or [],
    )
    db.add(api)
    await db.commit()
    return api
