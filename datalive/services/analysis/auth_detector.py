"""
Auth Detector

Asks the model how to authenticate against a discovered API and which
credentials the user has to supply, then stores the answer on the API row.
"""

import json
from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.exceptions import ResourceNotFoundError
from datalive.core.models import AuthDetails, AuthStatus, TaskType
from datalive.db import DiscoveredAPIModel
from datalive.services.ai.json_decoder import require_model
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.analysis.credential_store import CredentialStore

logger = structlog.get_logger(module="auth_detector")

AUTH_SCHEMA = {
    "authType": "api_key|oauth|jwt|basic|bearer|none",
    "location": "header|query|body",
    "fieldName": "exact field name",
    "format": "exact format (e.g. Bearer {value})",
    "credentialsNeeded": [
        {
            "name": "api_key",
            "label": "API Key",
            "description": "Your API key",
            "type": "text|password",
            "required": True,
        }
    ],
    "authFlow": {
        "requiresLogin": False,
        "loginEndpoint": "/auth/login",
        "tokenField": "access_token",
        "refreshable": False,
    },
    "examples": ["Authorization: Bearer abc123", "X-API-Key: your-key-here"],
}


def build_auth_prompt(document_text: str) -> str:
    return f"""You are an expert in API authentication.

Analyze the documentation below and determine:

1. **Authentication type**: API key, OAuth 2.0, JWT, Basic Auth, Bearer token, ...
2. **Credential location**: header, query parameter or body
3. **Exact field names**: e.g. "X-API-Key", "Authorization", "api_key", "token"
4. **Required format**: e.g. "Bearer {{token}}", "Basic {{base64}}", or just the value
5. **Credentials needed**: what the user must provide, in the order they are used
6. **Authentication flow**: prior login, refresh tokens, ...

DOCUMENTATION:
{document_text}

IMPORTANT: Respond ONLY with valid JSON:
{json.dumps(AUTH_SCHEMA, indent=2)}"""


class AuthDetector:

    def __init__(self, db: AsyncSession, orchestrator: AIOrchestrator):
        self.db = db
        self.orchestrator = orchestrator
        self.credentials = CredentialStore(db)

    async def detect(self, api_id: int, document_text: str, owner_id: str) -> AuthDetails:
        """Infer and persist the auth scheme of ``api_id``."""
        log = logger.bind(owner_id=owner_id, api_id=api_id)
        log.info("auth_detection_start")

        api = await self.db.get(DiscoveredAPIModel, api_id)
        if api is None:
            raise ResourceNotFoundError("API", api_id)

        try:
            result = await self.orchestrator.execute(
                build_auth_prompt(document_text),
                owner_id,
                TaskType.AUTH_DETECTION,
                api.project_id,
            )
            details = require_model(result.text, AuthDetails)
        except Exception as e:
            log.error("auth_detection_failed", error=str(e))
            await self.db.rollback()
            api = await self.db.get(DiscoveredAPIModel, api_id)
            api.auth_status = AuthStatus.FAILED.value
            await self.db.commit()
            raise

        api.auth_type = details.auth_type
        api.auth_details = details.model_dump(by_alias=True, mode="json", exclude_none=True)
        api.auth_status = AuthStatus.DETECTED.value
        await self.db.commit()

        log.info("auth_detected", auth_type=details.auth_type, model=result.model_used)
        return details

    async def save_credentials(self, api_id: int, credentials: Mapping[str, Any], owner_id: str) -> int:
        return await self.credentials.save(api_id, credentials, owner_id)

    async def get_credentials(self, api_id: int) -> dict[str, str]:
        return await self.credentials.get(api_id)
