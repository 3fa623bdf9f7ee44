"""
Endpoint Executor

Performs one live call against a discovered endpoint:
1. Load the API row and its stored credentials
2. Build auth (header, query or body) from the detected auth details
3. Resolve parameters, inferring missing required ones
4. Call the endpoint with a bounded timeout
5. Ask the model to explain the result
6. Persist an execution record

Remote failures (transport errors, timeouts, non-2xx answers) never raise;
they are recorded as ``failed`` executions and explained like any other result.
"""

import base64
import json
import re
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.config import settings
from datalive.core.exceptions import ProviderError, ResourceNotFoundError, TransportError
from datalive.core.models import (
    AuthDetails,
    CredentialLocation,
    EndpointSpec,
    ExecutionStatus,
    TaskType,
)
from datalive.db import DiscoveredAPIModel, ExecutionModel
from datalive.services.ai.orchestrator import AIOrchestrator
from datalive.services.analysis.credential_store import CredentialStore
from datalive.services.execution.parameter_inferencer import ParameterInferencer, ResolvedParams

logger = structlog.get_logger(module="endpoint_executor")

EXPLANATION_FALLBACK = "Could not generate an explanation for this result."
TRANSPORT_ERROR_STATUS = 500

_PATH_PARAM_RE = re.compile(r"\{(\w+)\}|:(\w+)")


# =============================================================================
# Request building
# =============================================================================


# Stored in place of credential values on execution records
REDACTED = "***"


@dataclass
class RequestAuth:
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: dict[str, str] = field(default_factory=dict)
    secret_header: str | None = None

    def redacted_headers(self) -> dict[str, str]:
        if self.secret_header is None:
            return dict(self.headers)
        return {**self.headers, self.secret_header: REDACTED}


def default_headers() -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "User-Agent": settings.executor_user_agent,
    }


def apply_format(template: str | None, value: str) -> str:
    """Substitute a credential into ``Bearer {value}``-style templates."""
    if not template:
        return value
    if "{value}" in template:
        return template.replace("{value}", value)
    if "{token}" in template:
        return template.replace("{token}", value)
    if "{base64}" in template:
        return template.replace("{base64}", base64.b64encode(value.encode()).decode())
    return value


def select_credential(details: AuthDetails, credentials: dict[str, str]) -> str | None:
    """Pick the credential named by the auth details.

    Declared ``credentialsNeeded`` order wins. Without a usable declaration a
    single stored credential is unambiguous; several are not guessed between.
    """
    for needed in details.credentials_needed:
        if needed.name in credentials:
            return credentials[needed.name]
    if details.field_name and details.field_name in credentials:
        return credentials[details.field_name]
    if len(credentials) == 1:
        return next(iter(credentials.values()))
    if credentials:
        logger.warning(
            "credential_ambiguous",
            credential_keys=sorted(credentials),
            declared=[c.name for c in details.credentials_needed],
        )
    return None


def build_request_auth(api: DiscoveredAPIModel, credentials: dict[str, str]) -> RequestAuth:
    auth = RequestAuth(headers=default_headers())
    if not api.auth_details or (api.auth_type or "none").lower() == "none":
        return auth

    details = AuthDetails.model_validate(api.auth_details)
    if details.auth_type == "none":
        return auth

    value = select_credential(details, credentials)
    if value is None:
        return auth

    formatted = apply_format(details.format, value)
    location = details.location or CredentialLocation.HEADER
    if location == CredentialLocation.HEADER:
        auth.secret_header = details.field_name or "Authorization"
        auth.headers[auth.secret_header] = formatted
    elif location == CredentialLocation.QUERY and details.field_name:
        auth.query[details.field_name] = formatted
    elif location == CredentialLocation.BODY and details.field_name:
        auth.body[details.field_name] = formatted
    return auth


def build_url(
    base_url: str,
    path: str,
    query: dict[str, Any] | None = None,
    path_params: dict[str, Any] | None = None,
) -> str:
    """Join base URL and path, fill path templates, append the query string."""
    path = path or ""
    if path_params:
        def substitute(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            if name in path_params:
                return quote(str(path_params[name]), safe="")
            return match.group(0)

        path = _PATH_PARAM_RE.sub(substitute, path)

    url = (base_url or "").rstrip("/")
    url += path if path.startswith("/") else f"/{path}"
    if query:
        url += f"?{urlencode(query, doseq=True)}"
    return url


# =============================================================================
# Outcome types
# =============================================================================


@dataclass
class HTTPOutcome:
    status: int
    data: Any
    error: bool

    @property
    def error_message(self) -> str | None:
        if not self.error:
            return None
        if isinstance(self.data, dict) and self.data.get("error"):
            error = self.data["error"]
            return error if isinstance(error, str) else json.dumps(error)
        return f"HTTP {self.status}"


def execution_to_dict(execution: ExecutionModel) -> dict[str, Any]:
    return {
        "id": execution.id,
        "api_id": execution.api_id,
        "endpoint_index": execution.endpoint_index,
        "endpoint": execution.endpoint,
        "method": execution.method,
        "request_url": execution.request_url,
        "request_params": execution.request_params,
        "request_headers": execution.request_headers,
        "request_body": execution.request_body,
        "response_status": execution.response_status,
        "response_data": execution.response_data,
        "response_time_ms": execution.response_time_ms,
        "status": execution.status,
        "error_message": execution.error_message,
        "ai_explanation": execution.ai_explanation,
        "ai_model": execution.ai_model,
        "created_at": execution.created_at.isoformat() if execution.created_at else None,
    }


@dataclass
class ExecutionOutcome:
    execution: ExecutionModel
    response: Any
    status: int
    explanation: str
    response_time_ms: int
    params: ResolvedParams

    @property
    def success(self) -> bool:
        return self.execution.status == ExecutionStatus.SUCCESS.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution": execution_to_dict(self.execution),
            "response": self.response,
            "status": self.status,
            "explanation": self.explanation,
            "response_time_ms": self.response_time_ms,
            "inferred_params": self.params.inferred,
        }


def _response_data(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _truncate(data: Any, limit: int) -> str:
    text = data if isinstance(data, str) else json.dumps(data, default=str)
    return text[:limit]


def build_explanation_prompt(
    endpoint: EndpointSpec,
    params: ResolvedParams,
    outcome: HTTPOutcome,
    limit: int,
) -> str:
    return f"""Explain in simple, clear English what this API call did and what the response means.

ENDPOINT: {endpoint.method} {endpoint.path}
DESCRIPTION: {endpoint.description or 'No description'}

PARAMETERS SENT:
{json.dumps(params.to_dict(), indent=2, default=str)}

RESPONSE (HTTP {outcome.status}):
{_truncate(outcome.data, limit)}

Explain:
1. What information was requested
2. What the API returned
3. What the data means (in business terms)
4. Whether there was an error and how to fix it

Respond in plain text without special formatting."""


# =============================================================================
# Executor
# =============================================================================


class EndpointExecutor:

    def __init__(
        self,
        db: AsyncSession,
        orchestrator: AIOrchestrator,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.db = db
        self.orchestrator = orchestrator
        self.inferencer = ParameterInferencer(orchestrator)
        self.credentials = CredentialStore(db)
        self.http_client = http_client
        self.timeout = timeout if timeout is not None else settings.executor_timeout

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
    ) -> httpx.Response:
        """Issue the request. Network-level failures raise TransportError."""
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if body:
            kwargs["json"] = body
        try:
            if self.http_client is not None:
                return await self.http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(
                str(e) or type(e).__name__,
                {"url": url, "type": type(e).__name__},
            ) from e

    async def call(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
    ) -> HTTPOutcome:
        """Perform the call and normalize every result into an HTTPOutcome."""
        try:
            response = await self._send(method, url, headers, body)
        except TransportError as e:
            logger.warning("endpoint_transport_error", url=url, error=e.message)
            return HTTPOutcome(status=TRANSPORT_ERROR_STATUS, data={"error": e.message}, error=True)

        return HTTPOutcome(
            status=response.status_code,
            data=_response_data(response),
            error=response.status_code >= 400,
        )

    async def _explain(
        self,
        endpoint: EndpointSpec,
        params: ResolvedParams,
        outcome: HTTPOutcome,
        owner_id: str,
        project_id: int | None,
    ) -> tuple[str, str | None]:
        try:
            result = await self.orchestrator.execute(
                build_explanation_prompt(endpoint, params, outcome, settings.explanation_response_chars),
                owner_id,
                TaskType.API_EXECUTION,
                project_id,
            )
            return result.text.strip() or EXPLANATION_FALLBACK, result.model_used
        except ProviderError as e:
            logger.warning("explanation_failed", endpoint=endpoint.path, error=str(e))
            return EXPLANATION_FALLBACK, None

    async def execute(
        self,
        api_id: int,
        endpoint: EndpointSpec | dict[str, Any],
        user_params: dict[str, Any] | None,
        owner_id: str,
        project_id: int | None = None,
        endpoint_index: int | None = None,
    ) -> ExecutionOutcome:
        if not isinstance(endpoint, EndpointSpec):
            endpoint = EndpointSpec.model_validate(endpoint)

        log = logger.bind(
            owner_id=owner_id,
            project_id=project_id,
            api_id=api_id,
            endpoint=endpoint.path,
            method=endpoint.method,
        )
        log.info("endpoint_execution_start")

        api = await self.db.get(DiscoveredAPIModel, api_id)
        if api is None:
            raise ResourceNotFoundError("API", api_id)
        credentials = await self.credentials.get(api_id)

        auth = build_request_auth(api, credentials)
        params = await self.inferencer.resolve(endpoint, user_params, owner_id, project_id)

        query = {**params.query, **auth.query}
        body = {**params.body, **auth.body}
        url = build_url(api.base_url, endpoint.path, query, params.path)

        start = time.perf_counter()
        outcome = await self.call(endpoint.method, url, auth.headers, body)
        response_time_ms = int((time.perf_counter() - start) * 1000)

        explanation, explanation_model = await self._explain(
            endpoint, params, outcome, owner_id, project_id
        )

        execution = ExecutionModel(
            api_id=api_id,
            endpoint_index=endpoint_index,
            endpoint=endpoint.path,
            method=endpoint.method,
            request_url=build_url(
                api.base_url,
                endpoint.path,
                {**params.query, **dict.fromkeys(auth.query, REDACTED)},
                params.path,
            ),
            request_params=params.to_dict(),
            request_headers=auth.redacted_headers(),
            request_body={**params.body, **dict.fromkeys(auth.body, REDACTED)} or None,
            response_status=outcome.status,
            response_data=outcome.data,
            response_time_ms=response_time_ms,
            status=(ExecutionStatus.FAILED if outcome.error else ExecutionStatus.SUCCESS).value,
            error_message=outcome.error_message,
            ai_explanation=explanation,
            ai_model=explanation_model,
        )
        self.db.add(execution)
        await self.db.commit()
        await self.db.refresh(execution)

        log.info(
            "endpoint_execution_completed",
            execution_id=execution.id,
            status=execution.status,
            response_status=outcome.status,
            response_time_ms=response_time_ms,
        )
        return ExecutionOutcome(
            execution=execution,
            response=outcome.data,
            status=outcome.status,
            explanation=explanation,
            response_time_ms=response_time_ms,
            params=params,
        )
