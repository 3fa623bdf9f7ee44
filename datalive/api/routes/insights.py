"""
Project insights, generated from successful executions.
"""

from fastapi import APIRouter, Query
from sqlalchemy import select

from datalive.api.deps import CurrentUser, DbSession, Orchestrator, load_owned_project
from datalive.core.models import APIResponse
from datalive.db import InsightModel
from datalive.services.experts.insight_agent import InsightAgent, insight_to_dict

router = APIRouter()


@router.post("/{project_id}/insights/generate", status_code=201)
async def generate_insights(
    project_id: int,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    insights = await InsightAgent(db, orchestrator).generate(project_id, current_user.id)
    message = f"{len(insights)} insights generated" if insights else "No successful executions to analyze yet"
    return APIResponse(message=message, data=[insight_to_dict(i) for i in insights])


@router.get("/{project_id}/insights")
async def list_insights(
    project_id: int,
    db: DbSession,
    current_user: CurrentUser,
    category: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    query = select(InsightModel).where(InsightModel.project_id == project_id)
    if category:
        query = query.where(InsightModel.category == category)
    result = await db.execute(
        query.order_by(InsightModel.created_at.desc(), InsightModel.id.desc()).limit(limit)
    )
    insights = result.scalars().all()
    return APIResponse(data=[insight_to_dict(i) for i in insights], meta={"total": len(insights)})
