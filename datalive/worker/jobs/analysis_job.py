"""
Document analysis jobs.

Uploads and URL registrations only create a ``pending`` document; the
analysis itself runs here, inside the arq worker:
1. Load the document (and scrape its URL if no text is stored yet)
2. Build an orchestrator over the worker's provider registry
3. Run the document analyzer (which owns the status lifecycle)
"""

import uuid

import structlog
from arq import create_pool
from arq.connections import RedisSettings

from datalive.core.config import settings
from datalive.core.exceptions import DataLiveException, ExternalServiceError
from datalive.core.models import DocumentSource, DocumentStatus
from datalive.db import DocumentModel, get_db_session
from datalive.services.ai.orchestrator import AIOrchestrator, SQLPreferenceStore
from datalive.services.analysis.document_analyzer import DocumentAnalyzer
from datalive.services.analysis_recovery import recover_stuck_analyses
from datalive.services.extraction.text_extractor import fetch_url_text

logger = structlog.get_logger(module="analysis_job")


async def enqueue_document_analysis(document_id: int, owner_id: str) -> bool:
    """
    Enqueue analysis of a single document.

    Each request gets a fresh job id: arq does not enqueue an id whose result
    it still keeps, and returns None instead.
    """
    job_id = f"analyze-{document_id}-{uuid.uuid4().hex[:12]}"
    redis = await create_pool(RedisSettings.from_dsn(str(settings.redis_url)))
    try:
        job = await redis.enqueue_job(
            "analyze_document_job",
            document_id,
            owner_id,
            _job_id=job_id,
        )
        if job is None:
            raise ExternalServiceError(
                "Analysis job was not queued",
                {"document_id": document_id, "job_id": job_id},
            )
        logger.info("document_analysis_enqueued", document_id=document_id, owner_id=owner_id, job_id=job_id)
        return True
    finally:
        await redis.close()


async def analyze_document_job(ctx: dict, document_id: int, owner_id: str) -> dict:
    log = logger.bind(document_id=document_id, owner_id=owner_id, job_id=ctx.get("job_id"))
    log.info("analysis_job_received")

    async with get_db_session() as db:
        document = await db.get(DocumentModel, document_id)
        if document is None:
            log.error("analysis_job_document_missing")
            return {"status": "error", "message": "Document not found"}

        text = document.text_content
        if not text and document.source_type == DocumentSource.URL.value and document.source_url:
            try:
                text = await fetch_url_text(document.source_url)
            except DataLiveException as e:
                log.error("analysis_job_extraction_failed", error=e.message)
                document.status = DocumentStatus.FAILED.value
                document.error_message = e.message
                await db.commit()
                return {"status": "failed", "message": e.message}
            document.text_content = text
            await db.commit()

        if not text:
            document.status = DocumentStatus.FAILED.value
            document.error_message = "Document has no text to analyze"
            await db.commit()
            return {"status": "failed", "message": document.error_message}

        orchestrator = AIOrchestrator(ctx["catalog"], ctx["providers"], SQLPreferenceStore(db))
        analyzer = DocumentAnalyzer(db, orchestrator)
        try:
            analysis = await analyzer.analyze(document_id, text, owner_id, document.project_id)
        except Exception as e:
            # Document is already marked failed by the analyzer
            log.error("analysis_job_failed", error=str(e))
            return {"status": "failed", "message": str(e)}

    log.info("analysis_job_completed", apis=len(analysis.apis))
    return {"status": "completed", "apis": len(analysis.apis)}


async def recover_stuck_analyses_job(ctx: dict) -> int:
    async with get_db_session() as db:
        return await recover_stuck_analyses(db)
