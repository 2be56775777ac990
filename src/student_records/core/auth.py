"""
Authentication and Authorization Module

FastAPI dependencies that authenticate requests from a JWT and enforce
role-based access.

The token is read from the HTTP-only `jwt` cookie set at login. Clients
that cannot hold cookies may send it as a Bearer token instead; the
cookie wins when both are present.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from student_records.core.security import decode_token
from student_records.modules.users.models import UserRole

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "jwt"

# auto_error=False: a missing header is fine when the cookie carries the token
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token (alternative to the jwt cookie)",
)


@dataclass
class CurrentUser:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        id: User's id
        email: User's email address
        username: User's display name
        role: "Admin" or "Student"
    """

    id: int
    email: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if token:
        return token
    if credentials:
        return credentials.credentials
    return None


def _user_from_token(token: str) -> CurrentUser:
    """
    Validate a token and build the caller from its claims.

    Raises:
        HTTPException 401: If the token is invalid, expired, or missing claims
    """
    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    try:
        if payload.get("type", "access") != "access":
            raise ValueError(f"unexpected token type {payload.get('type')!r}")
        user_id = int(payload["sub"])
        role = payload["role"]
        if role not in {r.value for r in UserRole}:
            raise ValueError(f"unknown role {role!r}")
        return CurrentUser(
            id=user_id,
            email=payload.get("email", ""),
            username=payload.get("name", ""),
            role=role,
        )
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that authenticates the caller.

    Usage:
        @router.get("/students")
        async def list_students(user: CurrentUser = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If no token is present or it does not validate
    """
    token = _extract_token(request, credentials)
    if not token:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication is required.")

    user = _user_from_token(token)
    logger.debug(f"Authenticated {user}")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    FastAPI dependency that additionally requires the Admin role.

    Raises:
        HTTPException 401: If the caller is not authenticated
        HTTPException 403: If the caller is not an admin
    """
    if not user.is_admin:
        logger.warning(f"Access denied: user {user.id} ({user.email}) has role '{user.role}'")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return user


__all__ = [
    "AUTH_COOKIE_NAME",
    "CurrentUser",
    "get_current_user",
    "require_admin",
]
