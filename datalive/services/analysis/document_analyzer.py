"""
Document Analyzer

Turns the raw text of an API document into DiscoveredAPI rows:
industry-aware extraction prompt -> orchestrator -> validated JSON -> rows.
The document row carries the lifecycle (analyzing -> completed | failed).
"""

import json
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.config import settings
from datalive.core.exceptions import ResourceNotFoundError
from datalive.core.models import AnalysisResult, DocumentStatus, TaskType
from datalive.db import DiscoveredAPIModel, DocumentModel, ProjectModel
from datalive.services.ai.json_decoder import require_model
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.experts.industry import IndustryExpert, lookup

logger = structlog.get_logger(module="document_analyzer")

RESPONSE_SCHEMA = {
    "apis": [
        {
            "name": "API name",
            "baseUrl": "https://api.example.com",
            "description": "Short description",
            "authType": "api_key|oauth|jwt|basic|none",
            "endpoints": [
                {
                    "method": "GET",
                    "path": "/users",
                    "description": "List users",
                    "requiredParams": [
                        {"name": "limit", "type": "query", "dataType": "number", "description": "Page size"}
                    ],
                    "optionalParams": [],
                    "responseStructure": {},
                    "statusCodes": [200, 400, 401, 500],
                }
            ],
        }
    ],
    "authDetails": {
        "type": "api_key",
        "location": "header",
        "fieldName": "X-API-Key",
        "additionalInfo": "",
    },
    "dataModels": [
        {
            "name": "User",
            "fields": [{"name": "id", "type": "string"}, {"name": "email", "type": "string"}],
        }
    ],
}


def build_analysis_prompt(raw_text: str, industry: str, expert: IndustryExpert) -> str:
    return f"""You are an expert in analyzing technical API documentation.

INDUSTRY CONTEXT: {industry.upper()}
{expert.context}

Analyze the documentation below and extract:

1. **Discovered APIs**: every API mentioned
   - API name
   - Base URL
   - Short description
   - Authentication type mentioned

2. **Endpoints**: for each API, every endpoint found
   - HTTP method (GET, POST, PUT, DELETE, ...)
   - Endpoint path
   - Description
   - Required parameters (query, path, body)
   - Optional parameters
   - Expected response structure
   - HTTP status codes

3. **Authentication**: authentication methods
   - Type (API key, OAuth, JWT, Basic Auth, ...)
   - Where credentials are sent (header, query, body)
   - Credential field names

4. **Data Models**: data structures mentioned
   - Model name
   - Fields and types
   - Relationships

DOCUMENTATION TO ANALYZE:
{raw_text}

IMPORTANT: Respond ONLY with valid JSON in exactly this format:
{json.dumps(RESPONSE_SCHEMA, indent=2)}"""


class DocumentAnalyzer:
    """Extract API descriptions from a document and persist them."""

    def __init__(self, db: AsyncSession, orchestrator: AIOrchestrator):
        self.db = db
        self.orchestrator = orchestrator

    async def _get_document(self, document_id: int) -> DocumentModel:
        document = await self.db.get(DocumentModel, document_id)
        if document is None:
            raise ResourceNotFoundError("Document", document_id)
        return document

    async def analyze(
        self,
        document_id: int,
        raw_text: str,
        owner_id: str,
        project_id: int,
    ) -> AnalysisResult:
        """Analyze ``raw_text`` and store the discovered APIs.

        Any failure marks the document ``failed`` before it propagates.
        """
        log = logger.bind(owner_id=owner_id, project_id=project_id, document_id=document_id)
        log.info("document_analysis_start", content_len=len(raw_text))

        document = await self._get_document(document_id)

        try:
            document.status = DocumentStatus.ANALYZING.value
            document.analysis_started_at = datetime.now(UTC)
            document.error_message = None
            await self.db.commit()

            project = await self.db.get(ProjectModel, project_id)
            industry = (project.industry if project else None) or "general"
            expert = lookup(industry)

            if len(raw_text) > settings.analysis_max_input_chars:
                log.warning(
                    "document_text_truncated",
                    content_len=len(raw_text),
                    limit=settings.analysis_max_input_chars,
                )
                raw_text = raw_text[: settings.analysis_max_input_chars]

            result = await self.orchestrator.execute(
                build_analysis_prompt(raw_text, industry, expert),
                owner_id,
                TaskType.DOCUMENT_ANALYSIS,
                project_id,
            )
            log.debug("document_analysis_response", model=result.model_used, elapsed_ms=result.elapsed_ms)

            analysis = require_model(result.text, AnalysisResult)

            saved = 0
            for api in analysis.apis:
                try:
                    async with self.db.begin_nested():
                        row = DiscoveredAPIModel(
                            project_id=project_id,
                            document_id=document_id,
                            name=api.name,
                            base_url=api.base_url,
                            description=api.description,
                            auth_type=api.auth_type,
                            endpoints=[
                                e.model_dump(by_alias=True, mode="json") for e in api.endpoints
                            ],
                        )
                        self.db.add(row)
                    saved += 1
                    log.info(
                        "api_saved",
                        api_id=row.id,
                        api_name=api.name,
                        endpoints=len(api.endpoints),
                    )
                except SQLAlchemyError as e:
                    log.error("api_save_failed", api_name=api.name, error=str(e))

            document.status = DocumentStatus.COMPLETED.value
            document.analysis_result = analysis.model_dump(by_alias=True, mode="json")
            document.analysis_model = result.model_used
            document.analyzed_at = datetime.now(UTC)
            await self.db.commit()

            log.info("document_analysis_completed", apis=saved, model=result.model_used)
            return analysis

        except Exception as e:
            log.error("document_analysis_failed", error=str(e))
            await self.db.rollback()
            document = await self._get_document(document_id)
            document.status = DocumentStatus.FAILED.value
            document.error_message = str(e)[:2000]
            await self.db.commit()
            raise
