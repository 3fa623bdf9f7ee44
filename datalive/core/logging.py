"""
Logging configuration.

Two outputs share one structlog pipeline:
- Wide events: one canonical log line per HTTP request, built up during the
  request via ``enrich_event`` and emitted by the middleware.
- Module events: service log calls bound with ``module=...`` are also copied
  into an in-memory ring buffer that backs the real-time log channel.
"""

import asyncio
import os
import sys
import time
import uuid
from collections import deque
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

import structlog
from structlog.types import Processor

# Context variables for request-scoped wide event
_request_event: ContextVar[dict[str, Any]] = ContextVar("request_event")
_request_start: ContextVar[float] = ContextVar("request_start", default=0.0)

# Keys that structlog adds itself and that are not part of event metadata
_RESERVED_KEYS = {"event", "level", "module", "timestamp", "request_id", "exc_info", "stack_info"}


# =============================================================================
# Log channel buffer
# =============================================================================


class LogEventBuffer:
    """Bounded buffer of recent module events with async subscribers.

    ``publish`` may run on any thread (sync code in a threadpool logs too);
    entries reach each subscriber queue on the loop that subscribed it.
    """

    def __init__(self, maxlen: int = 500):
        self._events: deque[dict[str, Any]] = deque(maxlen=maxlen)
        self._subscribers: dict[asyncio.Queue, asyncio.AbstractEventLoop] = {}

    @staticmethod
    def _offer(queue: asyncio.Queue, entry: dict[str, Any]) -> None:
        try:
            queue.put_nowait(entry)
        except asyncio.QueueFull:
            # Slow consumer: drop its oldest entry to make room
            queue.get_nowait()
            queue.put_nowait(entry)

    def publish(self, entry: dict[str, Any]) -> None:
        self._events.append(entry)
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        for queue, loop in list(self._subscribers.items()):
            if loop is current:
                self._offer(queue, entry)
            elif not loop.is_closed():
                loop.call_soon_threadsafe(self._offer, queue, entry)

    def recent(
        self,
        limit: int = 100,
        level: str | None = None,
        module: str | None = None,
        owner_id: str | None = None,
    ) -> list[dict[str, Any]]:
        events = [
            e for e in self._events
            if (level is None or e["level"] == level)
            and (module is None or e["module"] == module)
            and (owner_id is None or e["metadata"].get("owner_id") == owner_id)
        ]
        return events[-limit:]

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue:
        """New queue fed on the calling event loop."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers[queue] = asyncio.get_running_loop()
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.pop(queue, None)

    def clear(self) -> None:
        self._events.clear()


log_buffer = LogEventBuffer()


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return str(value)


def forward_module_events(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor copying ``module``-tagged events into the log buffer."""
    module = event_dict.get("module")
    if module:
        log_buffer.publish({
            "timestamp": event_dict.get("timestamp") or datetime.now(UTC).isoformat(),
            "level": event_dict.get("level", method_name),
            "module": module,
            "message": str(event_dict.get("event", "")),
            "metadata": {
                k: _jsonable(v) for k, v in event_dict.items() if k not in _RESERVED_KEYS
            },
        })
    return event_dict


# =============================================================================
# Wide events
# =============================================================================


def get_request_event() -> dict[str, Any]:
    """Get the current request's wide event for enrichment."""
    return _request_event.get({})


def enrich_event(**kwargs: Any) -> None:
    """
    Add fields to the current request's wide event.

        enrich_event(project_id=project.id, endpoints=len(api.endpoints))

    Dotted keys create nested objects (``"user.id"``).
    """
    event = _request_event.get({})
    for key, value in kwargs.items():
        if "." in key:
            parts = key.split(".")
            target = event
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
        else:
            event[key] = value


def init_request_event(
    request_id: str | None = None,
    method: str = "",
    path: str = "",
    client_ip: str = "",
    user_agent: str = "",
) -> dict[str, Any]:
    """Initialize a new wide event for the request."""
    event = {
        "request_id": request_id or str(uuid.uuid4())[:8],
        "http": {
            "method": method,
            "path": path,
            "client_ip": client_ip,
            "user_agent": user_agent[:200] if user_agent else None,
        },
        "service": {
            "name": "datalive-api",
            "version": os.environ.get("APP_VERSION", "dev"),
            "environment": os.environ.get("ENVIRONMENT", "development"),
        },
    }

    _request_event.set(event)
    _request_start.set(time.time())
    return event


def finalize_request_event(
    status_code: int,
    error: Exception | None = None,
) -> dict[str, Any]:
    """Finalize and return the wide event for emission."""
    event = _request_event.get({})
    start_time = _request_start.get()

    event.setdefault("http", {})["status_code"] = status_code
    event["duration_ms"] = int((time.time() - start_time) * 1000)
    event["outcome"] = "success" if status_code < 400 else "error"

    if error:
        event["error"] = {
            "type": type(error).__name__,
            "message": str(error)[:500],
        }
        if hasattr(error, "details"):
            event["error"]["details"] = error.details

    return event


def add_request_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor to add request_id to all log entries."""
    current_event = _request_event.get({})
    if current_event and "request_id" in current_event:
        event_dict["request_id"] = current_event["request_id"]
    return event_dict


def configure_logging(json_logs: bool = True, log_level: str = "INFO") -> None:
    """
    Configure structlog.

    Args:
        json_logs: JSON output (production) or colored console (development).
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_request_id,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        forward_module_events,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    import logging

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def emit_wide_event(event: dict[str, Any]) -> None:
    """Emit the canonical log line for a request."""
    logger = structlog.get_logger("wide_event")

    status_code = event.get("http", {}).get("status_code", 200)

    if status_code >= 500:
        logger.error("request_completed", **event)
    elif status_code >= 400:
        logger.warning("request_completed", **event)
    else:
        logger.info("request_completed", **event)
