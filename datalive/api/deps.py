"""
Shared FastAPI dependencies.

Process-wide services (model catalog, provider registry, outbound HTTP
client) live on ``app.state`` and are created once in ``create_app``.
Ownership helpers report foreign rows exactly like missing ones.
"""

from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.api.middleware import add_project_to_wide_event, add_user_to_wide_event
from datalive.core.auth import User, get_current_user
from datalive.core.exceptions import ResourceNotFoundError
from datalive.db import DiscoveredAPIModel, DocumentModel, ProjectModel, get_db
from datalive.services.ai.catalog import ModelCatalog
from datalive.services.ai.orchestrator import AIOrchestrator, SQLPreferenceStore
from datalive.services.ai.providers import ProviderRegistry


def get_model_catalog(request: Request) -> ModelCatalog:
    return request.app.state.catalog


def get_provider_registry(request: Request) -> ProviderRegistry:
    return request.app.state.providers


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


async def get_user(user: Annotated[User, Depends(get_current_user)]) -> User:
    """``get_current_user`` plus wide-event enrichment."""
    add_user_to_wide_event(user.id, user.is_admin)
    return user


def get_orchestrator(
    db: Annotated[AsyncSession, Depends(get_db)],
    catalog: Annotated[ModelCatalog, Depends(get_model_catalog)],
    providers: Annotated[ProviderRegistry, Depends(get_provider_registry)],
) -> AIOrchestrator:
    return AIOrchestrator(catalog, providers, SQLPreferenceStore(db))


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_user)]
Orchestrator = Annotated[AIOrchestrator, Depends(get_orchestrator)]


async def load_owned_project(db: AsyncSession, project_id: int, owner_id: str) -> ProjectModel:
    result = await db.execute(
        select(ProjectModel).where(
            ProjectModel.id == project_id,
            ProjectModel.owner_id == owner_id,
        )
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise ResourceNotFoundError("Project", project_id)
    add_project_to_wide_event(project_id=project_id)
    return project


async def load_owned_api(db: AsyncSession, api_id: int, owner_id: str) -> DiscoveredAPIModel:
    result = await db.execute(
        select(DiscoveredAPIModel)
        .join(ProjectModel, DiscoveredAPIModel.project_id == ProjectModel.id)
        .where(
            DiscoveredAPIModel.id == api_id,
            ProjectModel.owner_id == owner_id,
        )
    )
    api = result.scalar_one_or_none()
    if api is None:
        raise ResourceNotFoundError("API", api_id)
    add_project_to_wide_event(project_id=api.project_id, api_id=api_id)
    return api


async def load_owned_document(db: AsyncSession, document_id: int, owner_id: str) -> DocumentModel:
    result = await db.execute(
        select(DocumentModel)
        .join(ProjectModel, DocumentModel.project_id == ProjectModel.id)
        .where(
            DocumentModel.id == document_id,
            ProjectModel.owner_id == owner_id,
        )
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise ResourceNotFoundError("Document", document_id)
    add_project_to_wide_event(project_id=document.project_id, document_id=document_id)
    return document
