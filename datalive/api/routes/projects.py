"""
Project CRUD. Every row is scoped to the caller.
"""

from typing import Any

import structlog
from fastapi import APIRouter
from sqlalchemy import func, select

from datalive.api.deps import CurrentUser, DbSession, load_owned_project
from datalive.api.routes.schemas import CreateProjectRequest, UpdateProjectRequest
from datalive.core.models import APIResponse
from datalive.db import DiscoveredAPIModel, DocumentModel, ProjectModel

router = APIRouter()
logger = structlog.get_logger(module="projects")


def project_to_dict(project: ProjectModel, **counts: int) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "industry": project.industry,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        **counts,
    }


@router.get("")
async def list_projects(db: DbSession, current_user: CurrentUser) -> APIResponse:
    result = await db.execute(
        select(ProjectModel)
        .where(ProjectModel.owner_id == current_user.id)
        .order_by(ProjectModel.created_at.desc(), ProjectModel.id.desc())
    )
    projects = result.scalars().all()
    return APIResponse(
        data=[project_to_dict(p) for p in projects],
        meta={"total": len(projects)},
    )


@router.post("", status_code=201)
async def create_project(
    request: CreateProjectRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> APIResponse:
    project = ProjectModel(
        owner_id=current_user.id,
        name=request.name,
        description=request.description,
        industry=request.industry,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info("project_created", owner_id=current_user.id, project_id=project.id, industry=project.industry)
    return APIResponse(message="Project created", data=project_to_dict(project))


@router.get("/{project_id}")
async def get_project(project_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    project = await load_owned_project(db, project_id, current_user.id)

    documents = await db.scalar(
        select(func.count()).select_from(DocumentModel).where(DocumentModel.project_id == project_id)
    )
    apis = await db.scalar(
        select(func.count()).select_from(DiscoveredAPIModel).where(DiscoveredAPIModel.project_id == project_id)
    )
    return APIResponse(data=project_to_dict(project, documents_count=documents or 0, apis_count=apis or 0))


@router.patch("/{project_id}")
async def update_project(
    project_id: int,
    request: UpdateProjectRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> APIResponse:
    project = await load_owned_project(db, project_id, current_user.id)

    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(project, field, value)
    await db.commit()
    await db.refresh(project)

    logger.info("project_updated", owner_id=current_user.id, project_id=project_id)
    return APIResponse(message="Project updated", data=project_to_dict(project))


@router.delete("/{project_id}")
async def delete_project(project_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    project = await load_owned_project(db, project_id, current_user.id)
    await db.delete(project)
    await db.commit()

    logger.info("project_deleted", owner_id=current_user.id, project_id=project_id)
    return APIResponse(message="Project deleted", data={"id": project_id})
