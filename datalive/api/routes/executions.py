"""
Live endpoint execution and execution history.
"""

from typing import Annotated

import httpx
import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from datalive.api.deps import (
    CurrentUser,
    DbSession,
    Orchestrator,
    get_http_client,
    load_owned_api,
    load_owned_project,
)
from datalive.api.routes.schemas import ExecuteAllRequest, ExecuteRequest
from datalive.core.exceptions import ValidationError
from datalive.core.logging import enrich_event
from datalive.core.models import APIResponse
from datalive.db import DiscoveredAPIModel, ExecutionModel
from datalive.services.execution.batch_executor import BatchExecutor, summarize
from datalive.services.execution.endpoint_executor import EndpointExecutor, execution_to_dict

router = APIRouter()
logger = structlog.get_logger(module="executions")

HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]


@router.post("/execute")
async def execute_endpoint(
    request: ExecuteRequest,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
    http_client: HttpClient,
) -> APIResponse:
    """Call one endpoint of a discovered API, by index or by explicit definition."""
    api = await load_owned_api(db, request.api_id, current_user.id)

    if request.endpoint is not None:
        endpoint = request.endpoint
    elif request.endpoint_index is not None:
        endpoints = api.endpoints or []
        if not 0 <= request.endpoint_index < len(endpoints):
            raise ValidationError(
                f"Endpoint index {request.endpoint_index} out of range",
                {"api_id": api.id, "endpoints": len(endpoints)},
            )
        endpoint = endpoints[request.endpoint_index]
    else:
        raise ValidationError("Either endpoint or endpoint_index is required")

    executor = EndpointExecutor(db, orchestrator, http_client)
    outcome = await executor.execute(
        api.id,
        endpoint,
        request.params,
        current_user.id,
        api.project_id,
        endpoint_index=request.endpoint_index,
    )
    enrich_event(execution={"id": outcome.execution.id, "status": outcome.execution.status})
    return APIResponse(success=outcome.success, data=outcome.to_dict())


@router.post("/execute-all")
async def execute_all_endpoints(
    request: ExecuteAllRequest,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
    http_client: HttpClient,
) -> APIResponse:
    """Call every endpoint of an API once, without parameters."""
    api = await load_owned_api(db, request.api_id, current_user.id)
    project_id = api.project_id

    batch = BatchExecutor(EndpointExecutor(db, orchestrator, http_client))
    results = await batch.execute_all(request.api_id, current_user.id, project_id)
    summary = summarize(results)

    enrich_event(batch=summary)
    return APIResponse(
        data={"results": [r.to_dict() for r in results], "summary": summary},
        meta=summary,
    )


@router.get("/history")
async def execution_history(
    db: DbSession,
    current_user: CurrentUser,
    api_id: int | None = Query(None),
    project_id: int | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
) -> APIResponse:
    """Newest executions of one API or of every API in a project."""
    if api_id is not None:
        await load_owned_api(db, api_id, current_user.id)
        query = select(ExecutionModel).where(ExecutionModel.api_id == api_id)
    elif project_id is not None:
        await load_owned_project(db, project_id, current_user.id)
        query = (
            select(ExecutionModel)
            .join(DiscoveredAPIModel, ExecutionModel.api_id == DiscoveredAPIModel.id)
            .where(DiscoveredAPIModel.project_id == project_id)
        )
    else:
        raise ValidationError("api_id or project_id is required")

    result = await db.execute(
        query.order_by(ExecutionModel.created_at.desc(), ExecutionModel.id.desc()).limit(limit)
    )
    executions = result.scalars().all()
    return APIResponse(data=[execution_to_dict(e) for e in executions], meta={"total": len(executions)})
