"""
Student Repository

Database operations for student records.

Lookups return None for missing rows. Storage failures are logged and
wrapped: unique-index violations become ConflictError, anything else
becomes RepositoryError.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.exceptions import (
    DuplicateRegistrationNumberError,
    NullInputError,
    RepositoryError,
)
from student_records.modules.students.models import Student

logger = logging.getLogger(__name__)


class StudentRepository:
    """Repository for student database operations."""

    # Fields a caller may change; id and user_id are never copied from input
    MUTABLE_FIELDS = ("name", "email", "registration_number", "date_of_birth", "department")

    @staticmethod
    async def create(db: AsyncSession, student: Student | None) -> Student:
        """
        Persist a new student record.

        Args:
            db: Database session
            student: Unsaved Student instance

        Returns:
            The student with its generated id

        Raises:
            NullInputError: If student is None
            DuplicateRegistrationNumberError: If the registration number is taken
            RepositoryError: On any other storage failure
        """
        if student is None:
            raise NullInputError("student")

        try:
            db.add(student)
            await db.flush()
            await db.refresh(student)
        except IntegrityError as e:
            await db.rollback()
            logger.error(
                f"Integrity error creating student {student.registration_number}: {e.orig}"
            )
            raise DuplicateRegistrationNumberError(student.registration_number) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error creating student {student.registration_number}: {e}")
            raise RepositoryError(
                f"Failed to create student with registration number {student.registration_number}."
            ) from e

        logger.info(f"Created student: {student.id} - {student.registration_number}")
        return student

    @staticmethod
    async def get_by_id(db: AsyncSession, student_id: int) -> Student | None:
        try:
            result = await db.execute(select(Student).where(Student.id == student_id))
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching student {student_id}: {e}")
            raise RepositoryError(f"Failed to retrieve student with ID {student_id}.") from e

        student = result.scalar_one_or_none()
        if student is None:
            logger.warning(f"Student with ID {student_id} not found")
        else:
            logger.info(f"Retrieved student: {student_id}")
        return student

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Student | None:
        try:
            result = await db.execute(select(Student).where(Student.email == email).limit(1))
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching student by email {email}: {e}")
            raise RepositoryError(f"Failed to retrieve student with email {email}.") from e

        student = result.scalar_one_or_none()
        if student is None:
            logger.warning(f"No student with email {email}")
        return student

    @staticmethod
    async def get_by_registration_number(
        db: AsyncSession, registration_number: str
    ) -> Student | None:
        """Lookup used for up-front uniqueness checks, so a miss is not a warning."""
        try:
            result = await db.execute(
                select(Student).where(Student.registration_number == registration_number)
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Database error fetching student by registration number {registration_number}: {e}"
            )
            raise RepositoryError(
                f"Failed to retrieve student with registration number {registration_number}."
            ) from e

        student = result.scalar_one_or_none()
        logger.debug(f"Registration number {registration_number} in use: {student is not None}")
        return student

    @staticmethod
    async def get_by_user_id(db: AsyncSession, user_id: int) -> Student | None:
        try:
            result = await db.execute(select(Student).where(Student.user_id == user_id))
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching student for user {user_id}: {e}")
            raise RepositoryError(f"Failed to retrieve student for user {user_id}.") from e

        student = result.scalar_one_or_none()
        if student is None:
            logger.info(f"User {user_id} has no student record")
        return student

    @staticmethod
    async def get_all(db: AsyncSession) -> list[Student]:
        """Return all students ordered by id."""
        try:
            result = await db.execute(select(Student).order_by(Student.id))
        except SQLAlchemyError as e:
            logger.error(f"Database error listing students: {e}")
            raise RepositoryError("Failed to retrieve students.") from e

        students = list(result.scalars().all())
        logger.info(f"Retrieved {len(students)} students")
        return students

    @staticmethod
    async def update(db: AsyncSession, student: Student | None) -> Student | None:
        """
        Overwrite a stored student's mutable fields with the given values.

        Args:
            db: Database session
            student: Student carrying the target id and the new values

        Returns:
            The updated student, or None if no student has that id

        Raises:
            NullInputError: If student is None
            DuplicateRegistrationNumberError: If the new registration number is taken
            RepositoryError: On any other storage failure
        """
        if student is None:
            raise NullInputError("student")

        existing = await StudentRepository.get_by_id(db, student.id)
        if existing is None:
            return None

        for field in StudentRepository.MUTABLE_FIELDS:
            setattr(existing, field, getattr(student, field))

        try:
            await db.flush()
            await db.refresh(existing)
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Integrity error updating student {student.id}: {e.orig}")
            raise DuplicateRegistrationNumberError(student.registration_number) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error updating student {student.id}: {e}")
            raise RepositoryError(f"Failed to update student with ID {student.id}.") from e

        logger.info(f"Updated student: {existing.id}")
        return existing

    @staticmethod
    async def delete(db: AsyncSession, student_id: int) -> bool:
        """
        Delete a student record.

        Returns:
            True if a row was deleted, False if none had that id
        """
        student = await StudentRepository.get_by_id(db, student_id)
        if student is None:
            return False

        try:
            await db.delete(student)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error deleting student {student_id}: {e}")
            raise RepositoryError(f"Failed to delete student with ID {student_id}.") from e

        logger.info(f"Deleted student: {student_id}")
        return True
