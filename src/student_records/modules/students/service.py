"""
Student Service Layer

Business rules for student records:

- Registration numbers are unique; a clash is reported as a field-level
  conflict before the insert is attempted.
- A student linked to an account keeps the account's login email in step
  with its own email.
- Deleting a linked student deletes its Student account with it. An account
  promoted to another role is never removed this way.

Errors are logged and re-raised unchanged.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.exceptions import (
    DuplicateRegistrationNumberError,
    EmailAlreadyRegisteredError,
    StudentNotFoundError,
    StudentRecordsError,
)
from student_records.modules.students.models import Student
from student_records.modules.students.repository import StudentRepository
from student_records.modules.students.schemas import StudentCreate, StudentUpdate
from student_records.modules.users.models import User, UserRole
from student_records.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def get_all_students(db: AsyncSession) -> list[Student]:
    try:
        return await StudentRepository.get_all(db)
    except StudentRecordsError:
        logger.exception("Error fetching all students")
        raise


async def get_student(db: AsyncSession, student_id: int) -> Student:
    """
    Get a student by id.

    Raises:
        StudentNotFoundError: If no student has that id
    """
    student = await StudentRepository.get_by_id(db, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)
    return student


async def _ensure_registration_number_free(
    db: AsyncSession,
    registration_number: str,
    exclude_id: int | None = None,
) -> None:
    existing = await StudentRepository.get_by_registration_number(db, registration_number)
    if existing is not None and existing.id != exclude_id:
        logger.warning(f"Registration number already in use: {registration_number}")
        raise DuplicateRegistrationNumberError(registration_number)


async def create_student(db: AsyncSession, data: StudentCreate) -> Student:
    """
    Create a student record.

    Args:
        db: Database session
        data: Validated student fields

    Returns:
        The stored student

    Raises:
        DuplicateRegistrationNumberError: If the registration number is taken
        RepositoryError: On storage failure
    """
    logger.info(f"Creating student with registration number {data.registration_number}")
    try:
        await _ensure_registration_number_free(db, data.registration_number)
        student = Student(**data.model_dump())
        return await StudentRepository.create(db, student)
    except StudentRecordsError as e:
        logger.error(f"Error creating student {data.registration_number}: {e.message}")
        raise


async def update_student(db: AsyncSession, student_id: int, data: StudentUpdate) -> Student:
    """
    Replace a student's editable fields.

    If the student is linked to an account and the email changes, the
    account's login email changes too.

    Args:
        db: Database session
        student_id: Target student id
        data: New field values

    Returns:
        The updated student

    Raises:
        StudentNotFoundError: If no student has that id
        DuplicateRegistrationNumberError: If the new registration number is taken
        EmailAlreadyRegisteredError: If the new email belongs to another account
    """
    logger.info(f"Updating student {student_id}")
    try:
        current = await StudentRepository.get_by_id(db, student_id)
        if current is None:
            raise StudentNotFoundError(student_id)

        await _ensure_registration_number_free(db, data.registration_number, exclude_id=student_id)

        email_changed = current.email != data.email
        if email_changed and current.user_id is not None:
            await _sync_account_email(db, current.user_id, data.email)

        updated = await StudentRepository.update(db, Student(id=student_id, **data.model_dump()))
        if updated is None:
            raise StudentNotFoundError(student_id)
        return updated
    except StudentRecordsError as e:
        logger.error(f"Error updating student {student_id}: {e.message}")
        raise


async def _sync_account_email(db: AsyncSession, user_id: int, email: str) -> None:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        return

    other = await UserRepository.get_by_email(db, email)
    if other is not None and other.id != user_id:
        raise EmailAlreadyRegisteredError(email)

    await UserRepository.update(
        db,
        User(id=user_id, email=email, password_hash=user.password_hash, role=user.role),
    )
    logger.info(f"Synchronized login email of user {user_id} with student record")


async def delete_student(db: AsyncSession, student_id: int) -> bool:
    """
    Delete a student record.

    A student linked to a Student account is deleted together with the
    account. Accounts with any other role are kept.

    Returns:
        True if deleted, False if no student has that id
    """
    logger.info(f"Deleting student {student_id}")
    try:
        student = await StudentRepository.get_by_id(db, student_id)
        if student is None:
            return False

        if student.user_id is not None:
            owner = await UserRepository.get_by_id(db, student.user_id)
            if owner is not None and owner.role == UserRole.STUDENT:
                return await UserRepository.delete_user_and_student(db, student.user_id)
            logger.warning(
                f"Student {student_id} is linked to non-student account {student.user_id}; "
                "deleting the record only"
            )

        return await StudentRepository.delete(db, student_id)
    except StudentRecordsError as e:
        logger.error(f"Error deleting student {student_id}: {e.message}")
        raise
