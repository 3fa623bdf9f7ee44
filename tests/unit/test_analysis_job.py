"""
Unit tests for the document analysis worker jobs.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select

from datalive.core.exceptions import ExternalServiceError, ExtractionError
from datalive.core.models import DocumentSource, DocumentStatus
from datalive.db import DiscoveredAPIModel, DocumentModel
from datalive.worker.jobs import analyze_document_job, enqueue_document_analysis
from tests.conftest import make_project

pytestmark = pytest.mark.asyncio

FETCH = "datalive.worker.jobs.analysis_job.fetch_url_text"

REPLY = json.dumps({
    "apis": [{"name": "Orders API", "baseUrl": "https://shop.example.com", "endpoints": [{"path": "/orders"}]}]
})


async def add_document(db, project, source=DocumentSource.PDF, text="GET /orders", url=None):
    document = DocumentModel(
        project_id=project.id,
        name="docs",
        source_type=source.value,
        source_url=url,
        text_content=text,
        status=DocumentStatus.PENDING.value,
    )
    db.add(document)
    await db.commit()
    return document


@pytest.fixture
def ctx(catalog, registry) -> dict:
    return {"catalog": catalog, "providers": registry, "job_id": "analyze-test"}


class TestAnalyzeDocumentJob:
    async def test_pdf_document_is_analyzed(self, db_session, ctx, fake_provider):
        project = await make_project(db_session)
        document = await add_document(db_session, project)
        fake_provider.queue(REPLY)

        result = await analyze_document_job(ctx, document.id, "o")

        assert result == {"status": "completed", "apis": 1}
        await db_session.refresh(document)
        assert document.status == DocumentStatus.COMPLETED.value
        count = await db_session.scalar(select(func.count()).select_from(DiscoveredAPIModel))
        assert count == 1

    async def test_url_document_is_scraped_first(self, db_session, ctx, fake_provider):
        project = await make_project(db_session)
        document = await add_document(
            db_session, project, source=DocumentSource.URL, text=None, url="https://shop.example.com/docs"
        )
        fake_provider.queue(REPLY)

        with patch(FETCH, AsyncMock(return_value="# Orders\nGET /orders")) as fetch:
            result = await analyze_document_job(ctx, document.id, "o")

        fetch.assert_awaited_once_with("https://shop.example.com/docs")
        assert result["status"] == "completed"
        await db_session.refresh(document)
        assert document.text_content == "# Orders\nGET /orders"

    async def test_scrape_failure_fails_document(self, db_session, ctx, fake_provider):
        project = await make_project(db_session)
        document = await add_document(
            db_session, project, source=DocumentSource.URL, text=None, url="https://shop.example.com/docs"
        )

        with patch(FETCH, AsyncMock(side_effect=ExtractionError("No readable content"))):
            result = await analyze_document_job(ctx, document.id, "o")

        assert result == {"status": "failed", "message": "No readable content"}
        assert fake_provider.calls == []
        await db_session.refresh(document)
        assert document.status == DocumentStatus.FAILED.value

    async def test_analysis_failure_is_reported(self, db_session, ctx):
        project = await make_project(db_session)
        document = await add_document(db_session, project)

        result = await analyze_document_job(ctx, document.id, "o")

        assert result["status"] == "failed"
        await db_session.refresh(document)
        assert document.status == DocumentStatus.FAILED.value

    async def test_missing_document(self, db_session, ctx):
        result = await analyze_document_job(ctx, 12345, "o")
        assert result["status"] == "error"


class TestEnqueue:
    @staticmethod
    def _pool(job):
        pool = MagicMock()
        pool.enqueue_job = AsyncMock(return_value=job)
        pool.close = AsyncMock()
        return pool

    async def test_each_request_gets_a_fresh_job_id(self):
        pool = self._pool(MagicMock())

        with patch("datalive.worker.jobs.analysis_job.create_pool", AsyncMock(return_value=pool)):
            assert await enqueue_document_analysis(7, "o") is True
            assert await enqueue_document_analysis(7, "o") is True

        first, second = pool.enqueue_job.await_args_list
        assert first.args == ("analyze_document_job", 7, "o")
        assert first.kwargs["_job_id"].startswith("analyze-7-")
        assert second.kwargs["_job_id"].startswith("analyze-7-")
        assert first.kwargs["_job_id"] != second.kwargs["_job_id"]
        assert pool.close.await_count == 2

    async def test_refused_job_raises(self):
        # arq returns None when the job id is already queued or its result is kept
        pool = self._pool(None)

        with patch("datalive.worker.jobs.analysis_job.create_pool", AsyncMock(return_value=pool)):
            with pytest.raises(ExternalServiceError) as exc:
                await enqueue_document_analysis(7, "o")

        assert exc.value.details["document_id"] == 7
        pool.close.assert_awaited_once()
