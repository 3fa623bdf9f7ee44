"""
Document intake (PDF upload, documentation URL) and analysis lifecycle.

Intake stores a ``pending`` document and enqueues the analysis job; the
worker moves it through analyzing -> completed | failed.
"""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from datalive.api.deps import CurrentUser, DbSession, load_owned_document, load_owned_project
from datalive.api.routes.apis import api_to_dict
from datalive.api.routes.schemas import RegisterURLRequest
from datalive.core.config import settings
from datalive.core.exceptions import ConflictError, ExternalServiceError, ValidationError
from datalive.core.models import APIResponse, DocumentSource, DocumentStatus
from datalive.db import DiscoveredAPIModel, DocumentModel, ProjectModel
from datalive.services.extraction.text_extractor import extract_pdf_text
from datalive.worker.jobs import enqueue_document_analysis

router = APIRouter()
logger = structlog.get_logger(module="documents")

CHUNK_SIZE = 1024 * 1024


def document_to_dict(document: DocumentModel, detail: bool = False) -> dict[str, Any]:
    data = {
        "id": document.id,
        "project_id": document.project_id,
        "name": document.name,
        "source_type": document.source_type,
        "source_url": document.source_url,
        "file_size": document.file_size,
        "status": document.status,
        "error_message": document.error_message,
        "analysis_model": document.analysis_model,
        "analyzed_at": document.analyzed_at.isoformat() if document.analyzed_at else None,
        "created_at": document.created_at.isoformat() if document.created_at else None,
    }
    if detail:
        data["analysis_result"] = document.analysis_result
        data["content_length"] = len(document.text_content or "")
    return data


async def _enqueue(db: AsyncSession, document: DocumentModel, owner_id: str) -> None:
    """Hand the document to the worker; an unreachable queue fails the document."""
    try:
        await enqueue_document_analysis(document.id, owner_id)
    except Exception as e:
        logger.error("document_enqueue_failed", owner_id=owner_id, document_id=document.id, error=str(e))
        document.status = DocumentStatus.FAILED.value
        document.error_message = "Could not queue analysis"
        await db.commit()
        raise ExternalServiceError(
            "Could not queue document analysis",
            {"document_id": document.id},
        ) from e


@router.post("/upload", status_code=201)
async def upload_document(
    db: DbSession,
    current_user: CurrentUser,
    project_id: Annotated[int, Form()],
    file: Annotated[UploadFile, File()],
) -> APIResponse:
    """Upload an API documentation PDF and queue it for analysis."""
    project = await load_owned_project(db, project_id, current_user.id)

    filename = file.filename or "document.pdf"
    if file.content_type != "application/pdf" and not filename.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are accepted", {"content_type": file.content_type})

    chunks: list[bytes] = []
    size = 0
    while chunk := await file.read(CHUNK_SIZE):
        size += len(chunk)
        if size > settings.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB",
            )
        chunks.append(chunk)

    text = await run_in_threadpool(extract_pdf_text, b"".join(chunks))

    document = DocumentModel(
        project_id=project.id,
        name=filename,
        source_type=DocumentSource.PDF.value,
        file_size=size,
        text_content=text,
        status=DocumentStatus.PENDING.value,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)

    logger.info(
        "document_uploaded",
        owner_id=current_user.id,
        project_id=project.id,
        document_id=document.id,
        file_size=size,
        content_len=len(text),
    )
    await _enqueue(db, document, current_user.id)
    return APIResponse(message="Document uploaded, analysis queued", data=document_to_dict(document))


@router.post("/url", status_code=201)
async def register_url(
    request: RegisterURLRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> APIResponse:
    """Register a documentation website; the worker scrapes and analyzes it."""
    project = await load_owned_project(db, request.project_id, current_user.id)
    if not request.url.startswith(("http://", "https://")):
        raise ValidationError("URL must start with http:// or https://", {"url": request.url})

    document = DocumentModel(
        project_id=project.id,
        name=request.name or request.url,
        source_type=DocumentSource.URL.value,
        source_url=request.url,
        status=DocumentStatus.PENDING.value,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)

    logger.info("document_url_registered", owner_id=current_user.id, project_id=project.id, document_id=document.id)
    await _enqueue(db, document, current_user.id)
    return APIResponse(message="URL registered, analysis queued", data=document_to_dict(document))


@router.get("")
async def list_documents(
    db: DbSession,
    current_user: CurrentUser,
    project_id: int | None = Query(None),
) -> APIResponse:
    query = (
        select(DocumentModel)
        .join(ProjectModel, DocumentModel.project_id == ProjectModel.id)
        .where(ProjectModel.owner_id == current_user.id)
    )
    if project_id is not None:
        query = query.where(DocumentModel.project_id == project_id)
    result = await db.execute(query.order_by(DocumentModel.created_at.desc(), DocumentModel.id.desc()))
    documents = result.scalars().all()
    return APIResponse(data=[document_to_dict(d) for d in documents], meta={"total": len(documents)})


@router.get("/{document_id}")
async def get_document(document_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    document = await load_owned_document(db, document_id, current_user.id)
    result = await db.execute(
        select(DiscoveredAPIModel)
        .where(DiscoveredAPIModel.document_id == document_id)
        .order_by(DiscoveredAPIModel.id)
    )
    data = document_to_dict(document, detail=True)
    data["apis"] = [api_to_dict(api) for api in result.scalars().all()]
    return APIResponse(data=data)


@router.delete("/{document_id}")
async def delete_document(document_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    document = await load_owned_document(db, document_id, current_user.id)
    await db.delete(document)
    await db.commit()
    logger.info("document_deleted", owner_id=current_user.id, document_id=document_id)
    return APIResponse(message="Document deleted", data={"id": document_id})


@router.post("/{document_id}/reanalyze")
async def reanalyze_document(document_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    """Drop the APIs found previously and queue a fresh analysis."""
    document = await load_owned_document(db, document_id, current_user.id)
    if document.status in (DocumentStatus.PENDING.value, DocumentStatus.ANALYZING.value):
        raise ConflictError(
            "Document analysis already in progress",
            {"document_id": document_id, "status": document.status},
        )

    await db.execute(delete(DiscoveredAPIModel).where(DiscoveredAPIModel.document_id == document_id))
    document.status = DocumentStatus.PENDING.value
    document.error_message = None
    document.analysis_result = None
    await db.commit()
    await db.refresh(document)

    logger.info("document_reanalysis_requested", owner_id=current_user.id, document_id=document_id)
    await _enqueue(db, document, current_user.id)
    return APIResponse(message="Analysis queued", data=document_to_dict(document))
