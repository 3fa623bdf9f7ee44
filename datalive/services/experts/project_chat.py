"""
Project Chat

Conversational access to everything known about a project: its APIs,
recent successful executions and generated insights.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.exceptions import ResourceNotFoundError
from datalive.core.models import TaskType
from datalive.db import ConversationModel, DiscoveredAPIModel, ProjectModel
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.experts.context import latest_insights, successful_executions

logger = structlog.get_logger(module="project_chat")


@dataclass
class ProjectContext:
    project: ProjectModel
    apis: list
    executions: list
    insights: list


@dataclass
class ChatReply:
    response: str
    model_used: str
    elapsed_ms: int
    apis_count: int
    executions_count: int
    insights_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "model_used": self.model_used,
            "elapsed_ms": self.elapsed_ms,
            "context": {
                "apis_count": self.apis_count,
                "executions_count": self.executions_count,
                "insights_count": self.insights_count,
            },
        }


def _clip(text: str | None, limit: int = 100) -> str:
    return (text or "")[:limit]


def build_chat_prompt(context: ProjectContext, history: list[dict[str, str]], message: str) -> str:
    project = context.project
    apis = "\n".join(
        f"- {api.name}: {api.description or ''}\n  URL: {api.base_url}\n"
        f"  Endpoints: {len(api.endpoints or [])}"
        for api in context.apis[:5]
    )
    executions = "\n".join(
        f"- {ex.method} {ex.endpoint}: {_clip(ex.ai_explanation)}..." for ex in context.executions[:10]
    )
    insights = "\n".join(
        f"- {ins.title}: {_clip(ins.description)}..." for ins in context.insights[:5]
    )
    conversation = "\n".join(f"{m.get('role', 'user')}: {m.get('content', '')}" for m in history)

    return f"""You are an expert assistant helping users understand and work with their API projects.

PROJECT CONTEXT:
Name: {project.name}
Description: {project.description or ''}
Industry: {project.industry}

DISCOVERED APIS ({len(context.apis)}):
{apis}

RECENT EXECUTIONS ({len(context.executions)}):
{executions}

GENERATED INSIGHTS ({len(context.insights)}):
{insights}

CONVERSATION HISTORY:
{conversation}

USER QUESTION:
{message}

INSTRUCTIONS:
- Answer clearly and concisely
- Use the project context to give precise answers
- If the context is not enough, say so
- Suggest actions the user can take

ANSWER:"""


def conversation_to_dict(conversation: ConversationModel) -> dict[str, Any]:
    return {
        "id": conversation.id,
        "project_id": conversation.project_id,
        "user_message": conversation.user_message,
        "ai_response": conversation.ai_response,
        "model_used": conversation.model_used,
        "created_at": conversation.created_at.isoformat() if conversation.created_at else None,
    }


class ProjectChat:

    def __init__(self, db: AsyncSession, orchestrator: AIOrchestrator):
        self.db = db
        self.orchestrator = orchestrator

    async def _context(self, project_id: int) -> ProjectContext:
        project = await self.db.get(ProjectModel, project_id)
        if project is None:
            raise ResourceNotFoundError("Project", project_id)
        result = await self.db.execute(
            select(DiscoveredAPIModel)
            .where(DiscoveredAPIModel.project_id == project_id)
            .order_by(DiscoveredAPIModel.id)
        )
        return ProjectContext(
            project=project,
            apis=list(result.scalars().all()),
            executions=await successful_executions(self.db, project_id, 50),
            insights=await latest_insights(self.db, project_id, 20),
        )

    async def chat(
        self,
        project_id: int,
        message: str,
        owner_id: str,
        history: list[dict[str, str]] | None = None,
    ) -> ChatReply:
        log = logger.bind(owner_id=owner_id, project_id=project_id)
        log.info("project_chat_start", message_len=len(message))

        context = await self._context(project_id)
        result = await self.orchestrator.execute(
            build_chat_prompt(context, history or [], message),
            owner_id,
            TaskType.REPORT_GENERATION,
            project_id,
        )

        try:
            self.db.add(
                ConversationModel(
                    project_id=project_id,
                    owner_id=owner_id,
                    user_message=message,
                    ai_response=result.text,
                    model_used=result.model_used,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.warning("conversation_save_failed", error=str(e))

        log.info("project_chat_completed", model=result.model_used, elapsed_ms=result.elapsed_ms)
        return ChatReply(
            response=result.text,
            model_used=result.model_used,
            elapsed_ms=result.elapsed_ms,
            apis_count=len(context.apis),
            executions_count=len(context.executions),
            insights_count=len(context.insights),
        )

    async def history(self, project_id: int, limit: int = 10) -> list[ConversationModel]:
        result = await self.db.execute(
            select(ConversationModel)
            .where(ConversationModel.project_id == project_id)
            .order_by(ConversationModel.created_at.desc(), ConversationModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
