"""
Wide Events Middleware for FastAPI.

Implements the canonical log line pattern: the wide event is initialized at
request start, enriched by dependencies and handlers via ``enrich_event``,
and emitted once when the response is complete.
"""

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from datalive.core.logging import (
    emit_wide_event,
    enrich_event,
    finalize_request_event,
    init_request_event,
)


class WideEventMiddleware(BaseHTTPMiddleware):
    """One comprehensive log entry per HTTP request."""

    # Health checks and the log channel itself would only add noise
    SKIP_PATHS = {"/api/health", "/api/ready", "/api/v1/logs/recent", "/favicon.ico"}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        init_request_event(
            request_id=request.headers.get("x-request-id"),
            method=request.method,
            path=request.url.path,
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("user-agent", ""),
        )
        if request.query_params:
            enrich_event(**{"http.query_params": dict(request.query_params)})

        error: Exception | None = None
        status_code = 500
        start = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            error = e
            status_code = getattr(e, "status_code", 500)
            raise

        finally:
            event = finalize_request_event(status_code, error)
            event["handler_ms"] = round((time.perf_counter() - start) * 1000, 2)
            emit_wide_event(event)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP, respecting proxy headers."""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"


def add_user_to_wide_event(user_id: str | None = None, is_admin: bool = False) -> None:
    enrich_event(user={"id": user_id, "is_admin": is_admin})


def add_project_to_wide_event(
    project_id: int | None = None,
    api_id: int | None = None,
    document_id: int | None = None,
) -> None:
    """Attach tenancy context (project, API, document) to the wide event."""
    enrich_event(project={"id": project_id, "api_id": api_id, "document_id": document_id})
