"""
Authentication Router

Endpoints:
- POST /auth/login - Exchange credentials for a session cookie (rate limited)
- POST /auth/logout - Clear the session cookie
- GET /auth/me - The authenticated caller
- POST /auth/register - Create an account (admin)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.auth import (
    AUTH_COOKIE_NAME,
    CurrentUser,
    get_current_user,
    require_admin,
)
from student_records.core.config import settings
from student_records.core.database import get_db
from student_records.core.email_validation import EmailValidator, get_email_validator
from student_records.core.exceptions import StudentRecordsError, internal_error, to_http_exception
from student_records.core.rate_limit import rate_limit
from student_records.modules.auth import service
from student_records.modules.auth.schemas import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_auth_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log In",
    responses={
        401: {"description": "Invalid email or password"},
        429: {"description": "Too many login attempts"},
    },
)
@rate_limit(
    limit=lambda: settings.login_rate_limit,
    window_seconds=lambda: settings.login_rate_limit_window_seconds,
)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate and start a session.

    The token is set as an HTTP-only, SameSite=Strict `jwt` cookie that
    lives as long as the token.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 429: Rate limit exceeded
    """
    try:
        result = await service.login(db, credentials.email, credentials.password)
    except Exception as e:
        logger.exception(f"Unexpected error during login: {e}")
        raise internal_error() from e

    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_CREDENTIALS",
                "message": "Invalid email or password.",
            },
        )

    _set_auth_cookie(response, result.access_token, result.expires_in)

    return LoginResponse(
        access_token=result.access_token,
        expires_in=result.expires_in,
        user=CurrentUserResponse(
            id=result.user.id,
            email=result.user.email,
            username=result.user.username,
            role=result.user.role.value,
        ),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log Out",
)
async def logout() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return response


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Current User",
)
async def me(user: CurrentUser = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        username=user.username,
        role=user.role,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Account",
    responses={
        409: {"description": "Email already registered"},
        422: {"description": "Invalid input or email address that cannot receive mail"},
    },
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    email_validator: EmailValidator | None = Depends(get_email_validator),
) -> UserResponse:
    """
    Create an account. Student accounts get a placeholder student record.

    Raises:
        HTTPException 409: If the email is already registered
        HTTPException 422: If the email fails the MX check
    """
    try:
        user = await service.register(
            db,
            data,
            email_validator=email_validator,
            send_credentials=data.send_credentials,
        )
        logger.info(f"User {user.id} registered by admin {admin.id}")
        return UserResponse.model_validate(user)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error registering {data.email}: {e}")
        raise internal_error() from e
