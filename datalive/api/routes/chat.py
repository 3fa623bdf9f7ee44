"""
Conversational access to a project.
"""

from fastapi import APIRouter, Query

from datalive.api.deps import CurrentUser, DbSession, Orchestrator, load_owned_project
from datalive.api.routes.schemas import ChatRequest
from datalive.core.models import APIResponse
from datalive.services.experts.project_chat import ProjectChat, conversation_to_dict

router = APIRouter()


@router.post("/{project_id}")
async def chat_with_project(
    project_id: int,
    request: ChatRequest,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    reply = await ProjectChat(db, orchestrator).chat(
        project_id,
        request.message,
        current_user.id,
        [m.model_dump() for m in request.history],
    )
    return APIResponse(data=reply.to_dict())


@router.get("/{project_id}/history")
async def chat_history(
    project_id: int,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
    limit: int = Query(10, ge=1, le=100),
) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    conversations = await ProjectChat(db, orchestrator).history(project_id, limit)
    return APIResponse(data=[conversation_to_dict(c) for c in conversations])
