"""
Real-time log channel.

Exposes the module events captured by the structlog pipeline: a snapshot of
recent entries over HTTP and a live stream over WebSocket. Non-admin users
only see entries about their own requests.
"""

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from datalive.api.deps import CurrentUser
from datalive.core.auth import MOCK_USER_ID, User, decode_token
from datalive.core.config import settings
from datalive.core.logging import log_buffer
from datalive.core.models import APIResponse

router = APIRouter()
logger = structlog.get_logger()


def _scope(user: User) -> str | None:
    return None if user.is_admin else user.id


@router.get("/recent")
async def recent_logs(
    current_user: CurrentUser,
    limit: int = Query(100, ge=1, le=500),
    level: str | None = Query(None),
    module: str | None = Query(None),
) -> APIResponse:
    entries = log_buffer.recent(limit=limit, level=level, module=module, owner_id=_scope(current_user))
    # Newest first
    entries.reverse()
    return APIResponse(data=entries, meta={"total": len(entries)})


def _websocket_user(token: str | None) -> User | None:
    """Browsers cannot set headers on WebSockets, so the token is a query parameter."""
    if not settings.is_auth_enabled:
        if settings.is_production:
            return None
        return User(id=MOCK_USER_ID, roles=["ADMIN"])
    if not token:
        return None
    try:
        return decode_token(token)
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid websocket token", error=str(e))
        return None


@router.websocket("/stream")
async def stream_logs(
    websocket: WebSocket,
    token: str | None = Query(None),
    module: str | None = Query(None),
    level: str | None = Query(None),
):
    user = _websocket_user(token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    owner_id = _scope(user)
    queue = log_buffer.subscribe()
    logger.info("Log stream opened", user_id=user.id)
    try:
        while True:
            entry = await queue.get()
            if module and entry["module"] != module:
                continue
            if level and entry["level"] != level:
                continue
            if owner_id and entry["metadata"].get("owner_id") != owner_id:
                continue
            await websocket.send_json(entry)
    except WebSocketDisconnect:
        logger.info("Log stream closed", user_id=user.id)
    finally:
        log_buffer.unsubscribe(queue)
