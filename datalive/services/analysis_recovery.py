"""
Analysis Recovery Service for handling stuck document analyses.

Recovers documents stuck in 'analyzing' status due to crashes, OOM, or
worker restarts. Called on application startup and from the worker cron.
"""

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.config import settings
from datalive.core.models import DocumentStatus
from datalive.db.models import DocumentModel

logger = structlog.get_logger(module="analysis_recovery")

STUCK_MESSAGE = "Analysis interrupted: no result after {minutes} minutes"


async def recover_stuck_analyses(
    db: AsyncSession,
    timeout_minutes: int | None = None,
) -> int:
    """
    Fail documents stuck in 'analyzing' status.

    Args:
        db: Database session
        timeout_minutes: Consider analyses stuck if started longer ago than this

    Returns:
        Number of recovered documents
    """
    if timeout_minutes is None:
        timeout_minutes = settings.analysis_stuck_timeout_minutes

    log = logger.bind(timeout_minutes=timeout_minutes)
    log.info("stuck_analysis_check")

    threshold = datetime.now(UTC) - timedelta(minutes=timeout_minutes)

    result = await db.execute(
        select(DocumentModel).where(
            DocumentModel.status == DocumentStatus.ANALYZING.value,
            DocumentModel.analysis_started_at < threshold,
        )
    )
    stuck = result.scalars().all()

    for document in stuck:
        log.warning(
            "stuck_analysis_recovered",
            document_id=document.id,
            project_id=document.project_id,
            stuck_since=str(document.analysis_started_at),
        )
        document.status = DocumentStatus.FAILED.value
        document.error_message = STUCK_MESSAGE.format(minutes=timeout_minutes)

    if stuck:
        await db.commit()
        log.info("stuck_analyses_recovered", count=len(stuck))
    else:
        log.debug("no_stuck_analyses")

    return len(stuck)
