"""
Bearer-token gate for FastAPI.

Tokens are HS256 JWTs signed with ``JWT_SECRET``. The ``sub`` claim is the
owner id used for every tenancy check. Without a secret the service runs in
mock mode (development only) and every request acts as a fixed local user.
"""

from dataclasses import dataclass, field

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

_auth_logger = structlog.get_logger()

# Security scheme for Swagger UI
bearer_scheme = HTTPBearer(auto_error=False)

MOCK_USER_ID = "mock-user-id"


@dataclass
class User:
    """Authenticated user extracted from JWT."""

    id: str
    email: str = ""
    name: str = ""
    roles: list[str] = field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return any(role.upper() == "ADMIN" for role in self.roles)


def decode_token(token: str) -> User:
    """Validate a bearer token and build the user it identifies."""
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub"]},
        leeway=30,
    )
    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return User(
        id=str(claims["sub"]),
        email=claims.get("email", ""),
        name=claims.get("name", claims.get("preferred_username", "")),
        roles=list(roles),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """
    Dependency to get the current authenticated user.

    usage:
        @router.get("/protected")
        async def protected(user: User = Depends(get_current_user)):
            return {"user": user.id}
    """
    if not settings.is_auth_enabled:
        if settings.is_production:
            _auth_logger.critical(
                "AUTH DISABLED IN PRODUCTION! "
                "Set JWT_SECRET. Rejecting all requests until auth is configured."
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication is not configured. Service unavailable.",
            )
        return User(
            id=MOCK_USER_ID,
            email="dev@datalive.local",
            name="Local Developer",
            roles=["ADMIN"],
        )

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        ) from None
    except jwt.InvalidTokenError as e:
        _auth_logger.warning("Invalid token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from e
