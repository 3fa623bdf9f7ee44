"""
Discovered APIs: listing, auth detection and credential management.
"""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Query
from sqlalchemy import select

from datalive.api.deps import CurrentUser, DbSession, Orchestrator, load_owned_api
from datalive.api.routes.schemas import DetectAuthRequest, SaveCredentialsRequest
from datalive.core.exceptions import ValidationError
from datalive.core.models import APIResponse
from datalive.db import DiscoveredAPIModel, DocumentModel, ProjectModel
from datalive.services.analysis.auth_detector import AuthDetector
from datalive.services.analysis.credential_store import CredentialStore

router = APIRouter()
logger = structlog.get_logger(module="apis")


def api_to_dict(api: DiscoveredAPIModel) -> dict[str, Any]:
    return {
        "id": api.id,
        "project_id": api.project_id,
        "document_id": api.document_id,
        "name": api.name,
        "base_url": api.base_url,
        "description": api.description,
        "auth_type": api.auth_type,
        "auth_status": api.auth_status,
        "auth_details": api.auth_details,
        "endpoints": api.endpoints or [],
        "created_at": api.created_at.isoformat() if api.created_at else None,
    }


@router.get("")
async def list_apis(
    db: DbSession,
    current_user: CurrentUser,
    project_id: int | None = Query(None),
) -> APIResponse:
    query = (
        select(DiscoveredAPIModel)
        .join(ProjectModel, DiscoveredAPIModel.project_id == ProjectModel.id)
        .where(ProjectModel.owner_id == current_user.id)
    )
    if project_id is not None:
        query = query.where(DiscoveredAPIModel.project_id == project_id)
    result = await db.execute(query.order_by(DiscoveredAPIModel.id))
    apis = result.scalars().all()
    return APIResponse(data=[api_to_dict(a) for a in apis], meta={"total": len(apis)})


@router.get("/{api_id}")
async def get_api(api_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    api = await load_owned_api(db, api_id, current_user.id)
    data = api_to_dict(api)
    data["credential_keys"] = await CredentialStore(db).keys(api_id)
    return APIResponse(data=data)


@router.post("/{api_id}/detect-auth")
async def detect_auth(
    api_id: int,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
    request: Annotated[DetectAuthRequest | None, Body()] = None,
) -> APIResponse:
    """Detect how the API authenticates, from the given text or its source document."""
    api = await load_owned_api(db, api_id, current_user.id)

    text = request.document_text if request else None
    if not text and api.document_id is not None:
        document = await db.get(DocumentModel, api.document_id)
        text = document.text_content if document else None
    if not text:
        raise ValidationError("No document text available for auth detection", {"api_id": api_id})

    details = await AuthDetector(db, orchestrator).detect(api_id, text, current_user.id)
    return APIResponse(
        message="Authentication detected",
        data=details.model_dump(by_alias=True, mode="json", exclude_none=True),
    )


@router.get("/{api_id}/credentials")
async def list_credentials(api_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    """Stored credential keys. Values never leave the server."""
    await load_owned_api(db, api_id, current_user.id)
    return APIResponse(data={"keys": await CredentialStore(db).keys(api_id)})


@router.put("/{api_id}/credentials")
async def save_credentials(
    api_id: int,
    request: SaveCredentialsRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> APIResponse:
    """Replace every stored credential of the API."""
    await load_owned_api(db, api_id, current_user.id)
    store = CredentialStore(db)
    saved = await store.save(api_id, request.credentials, current_user.id)
    return APIResponse(
        message="Credentials saved",
        data={"saved": saved, "keys": await store.keys(api_id)},
    )
