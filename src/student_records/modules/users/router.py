"""
Users Router (admin)

Endpoints:
- GET /users - List accounts
- GET /users/{id} - Account with its student record
- PATCH /users/{id} - Change email, password or role
- DELETE /users/{id} - Delete a student account and its student record
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.auth import CurrentUser, require_admin
from student_records.core.database import get_db
from student_records.core.exceptions import StudentRecordsError, internal_error, to_http_exception
from student_records.modules.auth import service
from student_records.modules.auth.schemas import (
    UserProfileResponse,
    UserResponse,
    UserUpdateRequest,
)
from student_records.modules.students.schemas import StudentResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[UserResponse], summary="List Users")
async def list_users(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> list[UserResponse]:
    try:
        users = await service.get_all_users(db)
        return [UserResponse.model_validate(u) for u in users]
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error listing users: {e}")
        raise internal_error() from e


@router.get(
    "/{user_id}",
    response_model=UserProfileResponse,
    summary="Get User",
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> UserProfileResponse:
    try:
        profile = await service.get_user_with_profile(db, user_id)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error fetching user {user_id}: {e}")
        raise internal_error() from e

    response = UserProfileResponse.model_validate(profile.user)
    if profile.student is not None:
        response.student = StudentResponse.model_validate(profile.student)
    return response


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update User",
    responses={404: {"description": "User not found"}, 409: {"description": "Email in use"}},
)
async def update_user(
    user_id: int,
    data: UserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    try:
        user = await service.update_user(db, user_id, data)
        logger.info(f"User {user_id} updated by admin {admin.id}")
        return UserResponse.model_validate(user)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error updating user {user_id}: {e}")
        raise internal_error() from e


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Student Account",
    responses={
        403: {"description": "Only student accounts can be deleted"},
        404: {"description": "User not found"},
    },
)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> Response:
    try:
        await service.delete_student_account(db, user_id)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error deleting user {user_id}: {e}")
        raise internal_error() from e

    logger.info(f"User {user_id} deleted by admin {admin.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
