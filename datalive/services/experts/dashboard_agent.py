"""
Dashboard Agent

Designs a dashboard (widgets, layout, filters) from the industry KPIs,
recent successful executions and the latest insights of a project.
"""

import json
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.exceptions import ParseError, ResourceNotFoundError
from datalive.core.models import TaskType
from datalive.db import DashboardModel, ExecutionModel, InsightModel, ProjectModel
from datalive.services.ai.json_decoder import require_object
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.experts.context import excerpt, latest_insights, successful_executions
from datalive.services.experts.industry import lookup

logger = structlog.get_logger(module="dashboard_agent")

EXECUTION_LIMIT = 100
INSIGHT_LIMIT = 10
EXCERPT_CHARS = 300

DASHBOARD_SCHEMA = {
    "name": "Dashboard name",
    "description": "Short description",
    "layout": {"rows": 3, "columns": 4},
    "widgets": [
        {
            "id": "widget1",
            "type": "metric|chart|table|list|gauge",
            "title": "Widget title",
            "position": {"row": 0, "col": 0, "width": 2, "height": 1},
            "config": {
                "metric": "metric_name",
                "value": "value",
                "trend": "up|down|stable",
                "trendValue": "+10%",
                "color": "green|red|blue|yellow",
            },
            "chartConfig": {"type": "line|bar|pie|area", "data": [], "xAxis": "x_field", "yAxis": "y_field"},
            "dataSource": {"type": "execution|insight|calculated", "endpoint": "/path", "field": "field"},
        }
    ],
    "filters": [{"name": "Date filter", "type": "daterange|select|multiselect", "options": []}],
    "refreshInterval": 300,
}


def build_dashboard_prompt(
    industry: str,
    kpis: list[str],
    executions: list[ExecutionModel],
    insights: list[InsightModel],
) -> str:
    data = "\n---\n".join(
        f"Endpoint: {ex.endpoint}\nData: {excerpt(ex.response_data, EXCERPT_CHARS)}" for ex in executions
    )
    findings = "\n".join(f"- {ins.title}: {ins.description or ''}" for ins in insights)
    return f"""You are an expert in data visualization and dashboards. Design an interactive dashboard.

INDUSTRY: {industry}
RELEVANT KPIS: {', '.join(kpis)}

AVAILABLE DATA:
{data or 'No execution data yet'}

AVAILABLE INSIGHTS:
{findings or 'No insights yet'}

TASK: Design a dashboard with concrete widgets as JSON:
{json.dumps(DASHBOARD_SCHEMA, indent=2)}

Include key metrics, trend charts, important data tables, critical alerts and
period comparisons."""


def dashboard_to_dict(dashboard: DashboardModel) -> dict[str, Any]:
    return {
        "id": dashboard.id,
        "project_id": dashboard.project_id,
        "name": dashboard.name,
        "description": dashboard.description,
        "layout": dashboard.layout,
        "data_sources": dashboard.data_sources,
        "ai_model": dashboard.ai_model,
        "created_at": dashboard.created_at.isoformat() if dashboard.created_at else None,
    }


class DashboardAgent:

    def __init__(self, db: AsyncSession, orchestrator: AIOrchestrator):
        self.db = db
        self.orchestrator = orchestrator

    async def generate(self, project_id: int, owner_id: str) -> DashboardModel:
        log = logger.bind(owner_id=owner_id, project_id=project_id)

        project = await self.db.get(ProjectModel, project_id)
        if project is None:
            raise ResourceNotFoundError("Project", project_id)

        industry = project.industry or "general"
        expert = lookup(industry)
        executions = await successful_executions(self.db, project_id, EXECUTION_LIMIT)
        insights = await latest_insights(self.db, project_id, INSIGHT_LIMIT)

        log.info("dashboard_generation_start", executions=len(executions), insights=len(insights))
        result = await self.orchestrator.execute(
            build_dashboard_prompt(industry, list(expert.kpis), executions, insights),
            owner_id,
            TaskType.DASHBOARD_GENERATION,
            project_id,
        )

        config = require_object(result.text)
        if not config.get("name"):
            raise ParseError("Model response has no dashboard name", result.text)
        widgets = config.get("widgets") or []

        dashboard = DashboardModel(
            project_id=project_id,
            name=str(config["name"])[:255],
            description=config.get("description"),
            layout=config,
            data_sources={
                "executions": [ex.id for ex in executions],
                "insights": [ins.id for ins in insights],
            },
            ai_model=result.model_used,
        )
        self.db.add(dashboard)
        await self.db.commit()
        await self.db.refresh(dashboard)

        log.info(
            "dashboard_generation_completed",
            dashboard_id=dashboard.id,
            widgets=len(widgets),
            model=result.model_used,
        )
        return dashboard
