"""
AI-designed project dashboards.
"""

from fastapi import APIRouter
from sqlalchemy import select

from datalive.api.deps import CurrentUser, DbSession, Orchestrator, load_owned_project
from datalive.core.models import APIResponse
from datalive.db import DashboardModel
from datalive.services.experts.dashboard_agent import DashboardAgent, dashboard_to_dict

router = APIRouter()


@router.post("/{project_id}/dashboards/generate", status_code=201)
async def generate_dashboard(
    project_id: int,
    db: DbSession,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    dashboard = await DashboardAgent(db, orchestrator).generate(project_id, current_user.id)
    return APIResponse(message="Dashboard generated", data=dashboard_to_dict(dashboard))


@router.get("/{project_id}/dashboards")
async def list_dashboards(project_id: int, db: DbSession, current_user: CurrentUser) -> APIResponse:
    await load_owned_project(db, project_id, current_user.id)
    result = await db.execute(
        select(DashboardModel)
        .where(DashboardModel.project_id == project_id)
        .order_by(DashboardModel.created_at.desc(), DashboardModel.id.desc())
    )
    dashboards = result.scalars().all()
    return APIResponse(data=[dashboard_to_dict(d) for d in dashboards], meta={"total": len(dashboards)})
