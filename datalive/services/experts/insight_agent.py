"""
Insight Agent

Reads the successful executions of a project and asks the model for
business insights (trends, patterns, recommendations, alerts).
"""

import json
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.exceptions import ParseError, ResourceNotFoundError
from datalive.core.models import TaskType
from datalive.db import ExecutionModel, InsightModel, ProjectModel
from datalive.services.ai.json_decoder import require_object
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.experts.context import excerpt, successful_executions

logger = structlog.get_logger(module="insight_agent")

EXECUTION_LIMIT = 100
EXCERPT_CHARS = 500

INSIGHT_SCHEMA = {
    "insights": [
        {
            "title": "Insight title",
            "description": "Detailed description",
            "category": "trend|pattern|recommendation|alert",
            "priority": "low|medium|high|critical",
            "data": {
                "metric": "metric name",
                "value": "value found",
                "comparison": "comparison or context",
            },
            "recommendations": ["Recommendation 1", "Recommendation 2"],
        }
    ]
}


def build_insight_prompt(industry: str, executions: list[ExecutionModel]) -> str:
    blocks = "\n---\n".join(
        f"Endpoint: {ex.endpoint}\nMethod: {ex.method}\n"
        f"Data returned: {excerpt(ex.response_data, EXCERPT_CHARS)}"
        for ex in executions
    )
    return f"""You are an expert data analyst. Analyze the following API execution data and produce business insights.

INDUSTRY: {industry}

EXECUTION DATA:
{blocks}

TASK: Produce 5-10 business insights as JSON:
{json.dumps(INSIGHT_SCHEMA, indent=2)}

Focus on:
1. Trends
2. Patterns in the data
3. Improvement opportunities
4. Alerts or detected problems
5. Actionable recommendations

Use business language, not technical language."""


def insight_to_dict(insight: InsightModel) -> dict[str, Any]:
    return {
        "id": insight.id,
        "project_id": insight.project_id,
        "title": insight.title,
        "description": insight.description,
        "category": insight.category,
        "priority": insight.priority,
        "data": insight.data,
        "ai_model": insight.ai_model,
        "created_at": insight.created_at.isoformat() if insight.created_at else None,
    }


class InsightAgent:

    def __init__(self, db: AsyncSession, orchestrator: AIOrchestrator):
        self.db = db
        self.orchestrator = orchestrator

    async def generate(self, project_id: int, owner_id: str) -> list[InsightModel]:
        log = logger.bind(owner_id=owner_id, project_id=project_id)

        project = await self.db.get(ProjectModel, project_id)
        if project is None:
            raise ResourceNotFoundError("Project", project_id)

        executions = await successful_executions(self.db, project_id, EXECUTION_LIMIT)
        if not executions:
            log.info("insight_generation_skipped", reason="no_successful_executions")
            return []

        log.info("insight_generation_start", executions=len(executions))
        result = await self.orchestrator.execute(
            build_insight_prompt(project.industry or "general", executions),
            owner_id,
            TaskType.INSIGHT_GENERATION,
            project_id,
        )

        payload = require_object(result.text)
        items = payload.get("insights")
        if not isinstance(items, list):
            raise ParseError("Model response has no 'insights' list", result.text)

        insights = [
            InsightModel(
                project_id=project_id,
                title=str(item.get("title") or "Untitled insight")[:500],
                description=item.get("description"),
                category=item.get("category"),
                priority=item.get("priority"),
                data=item,
                ai_model=result.model_used,
            )
            for item in items
            if isinstance(item, dict)
        ]
        self.db.add_all(insights)
        await self.db.commit()
        for insight in insights:
            await self.db.refresh(insight)

        log.info("insight_generation_completed", count=len(insights), model=result.model_used)
        return insights
