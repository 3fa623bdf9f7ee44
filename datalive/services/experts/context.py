"""Project data shared by the insight, dashboard and chat agents."""

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.models import ExecutionStatus
from datalive.db import DiscoveredAPIModel, ExecutionModel, InsightModel


async def successful_executions(
    db: AsyncSession, project_id: int, limit: int = 100
) -> list[ExecutionModel]:
    """Newest successful executions across every API of a project."""
    result = await db.execute(
        select(ExecutionModel)
        .join(DiscoveredAPIModel, ExecutionModel.api_id == DiscoveredAPIModel.id)
        .where(
            DiscoveredAPIModel.project_id == project_id,
            ExecutionModel.status == ExecutionStatus.SUCCESS.value,
        )
        .order_by(ExecutionModel.created_at.desc(), ExecutionModel.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def latest_insights(db: AsyncSession, project_id: int, limit: int = 10) -> list[InsightModel]:
    result = await db.execute(
        select(InsightModel)
        .where(InsightModel.project_id == project_id)
        .order_by(InsightModel.created_at.desc(), InsightModel.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def excerpt(data: Any, limit: int) -> str:
    text = data if isinstance(data, str) else json.dumps(data, default=str)
    return text[:limit]
