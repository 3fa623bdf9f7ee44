"""
Unit tests for stuck analysis recovery.
"""

from datetime import UTC, datetime, timedelta

import pytest

from datalive.core.models import DocumentSource, DocumentStatus
from datalive.db import DocumentModel
from datalive.services.analysis_recovery import recover_stuck_analyses
from tests.conftest import make_project

pytestmark = pytest.mark.asyncio


async def add_document(db, project, status, started_minutes_ago=None):
    started = None
    if started_minutes_ago is not None:
        started = datetime.now(UTC) - timedelta(minutes=started_minutes_ago)
    document = DocumentModel(
        project_id=project.id,
        name="orders.pdf",
        source_type=DocumentSource.PDF.value,
        text_content="docs",
        status=status.value,
        analysis_started_at=started,
    )
    db.add(document)
    await db.commit()
    return document


class TestRecoverStuckAnalyses:
    async def test_old_analyses_are_failed(self, db_session):
        project = await make_project(db_session)
        stuck = await add_document(db_session, project, DocumentStatus.ANALYZING, started_minutes_ago=45)
        fresh = await add_document(db_session, project, DocumentStatus.ANALYZING, started_minutes_ago=5)
        done = await add_document(db_session, project, DocumentStatus.COMPLETED, started_minutes_ago=90)

        recovered = await recover_stuck_analyses(db_session, timeout_minutes=30)

        assert recovered == 1
        for document in (stuck, fresh, done):
            await db_session.refresh(document)
        assert stuck.status == DocumentStatus.FAILED.value
        assert "30 minutes" in stuck.error_message
        assert fresh.status == DocumentStatus.ANALYZING.value
        assert done.status == DocumentStatus.COMPLETED.value

    async def test_nothing_to_recover(self, db_session):
        project = await make_project(db_session)
        await add_document(db_session, project, DocumentStatus.PENDING)

        assert await recover_stuck_analyses(db_session) == 0
