"""
Students Router

Endpoints:
- GET /students - List student records (any authenticated user)
- GET /students/{id} - Get one student record (any authenticated user)
- POST /students - Create a student record (admin)
- PUT /students/{id} - Replace a student's editable fields (admin)
- DELETE /students/{id} - Delete a student record and its account (admin)
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.auth import CurrentUser, get_current_user, require_admin
from student_records.core.database import get_db
from student_records.core.exceptions import (
    StudentNotFoundError,
    StudentRecordsError,
    internal_error,
    to_http_exception,
)
from student_records.modules.students import service
from student_records.modules.students.schemas import (
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=list[StudentResponse],
    summary="List Students",
)
async def list_students(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[StudentResponse]:
    try:
        students = await service.get_all_students(db)
        return [StudentResponse.model_validate(s) for s in students]
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error listing students: {e}")
        raise internal_error() from e


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Get Student",
    responses={404: {"description": "Student not found"}},
)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> StudentResponse:
    try:
        student = await service.get_student(db, student_id)
        return StudentResponse.model_validate(student)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error fetching student {student_id}: {e}")
        raise internal_error() from e


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Student",
    responses={
        409: {
            "description": "Registration number already in use",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "DUPLICATE_REGISTRATION_NUMBER",
                            "message": "Registration number REG-001 is already in use.",
                            "field": "registration_number",
                        }
                    }
                }
            },
        },
    },
)
async def create_student(
    data: StudentCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> StudentResponse:
    """
    Create a student record.

    Raises:
        HTTPException 409: If the registration number is taken
    """
    try:
        student = await service.create_student(db, data)
        logger.info(f"Student {student.id} created by admin {admin.id}")
        return StudentResponse.model_validate(student)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error creating student: {e}")
        raise internal_error() from e


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Update Student",
    responses={404: {"description": "Student not found"}, 409: {"description": "Conflict"}},
)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> StudentResponse:
    """
    Replace a student's editable fields.

    The id in the URL is authoritative; the body cannot change it.
    """
    try:
        student = await service.update_student(db, student_id, data)
        logger.info(f"Student {student_id} updated by admin {admin.id}")
        return StudentResponse.model_validate(student)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error updating student {student_id}: {e}")
        raise internal_error() from e


@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Student",
    responses={404: {"description": "Student not found"}},
)
async def delete_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> Response:
    """Delete a student record. A linked account is deleted with it."""
    try:
        deleted = await service.delete_student(db, student_id)
    except StudentRecordsError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error deleting student {student_id}: {e}")
        raise internal_error() from e

    if not deleted:
        raise to_http_exception(StudentNotFoundError(student_id))

    logger.info(f"Student {student_id} deleted by admin {admin.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
