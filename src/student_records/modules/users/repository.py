"""
User Repository

Database operations for login accounts.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.exceptions import (
    EmailAlreadyRegisteredError,
    NullInputError,
    RepositoryError,
)
from student_records.modules.students.repository import StudentRepository
from student_records.modules.users.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    MUTABLE_FIELDS = ("email", "password_hash", "role")

    @staticmethod
    async def create(db: AsyncSession, user: User | None) -> User:
        """
        Persist a new user.

        Args:
            db: Database session
            user: Unsaved User instance with a hashed password

        Returns:
            The user with its generated id

        Raises:
            NullInputError: If user is None
            EmailAlreadyRegisteredError: If the email is taken
            RepositoryError: On any other storage failure
        """
        if user is None:
            raise NullInputError("user")

        try:
            db.add(user)
            await db.flush()
            await db.refresh(user)
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Integrity error creating user {user.email}: {e.orig}")
            raise EmailAlreadyRegisteredError(user.email) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error creating user {user.email}: {e}")
            raise RepositoryError(f"Failed to create user {user.email}.") from e

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> User | None:
        try:
            result = await db.execute(select(User).where(User.id == user_id))
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching user {user_id}: {e}")
            raise RepositoryError(f"Failed to retrieve user with ID {user_id}.") from e

        user = result.scalar_one_or_none()
        if user is None:
            logger.warning(f"User with ID {user_id} not found")
        else:
            logger.info(f"Retrieved user: {user_id}")
        return user

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """
        Get a user by email address (exact match).

        Returns:
            User instance or None if not found

        Raises:
            RepositoryError: On storage failure
        """
        try:
            result = await db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching user by email {email}: {e}")
            raise RepositoryError(f"Failed to retrieve user with email {email}.") from e

        user = result.scalar_one_or_none()
        logger.debug(f"User lookup for {email}: {'found' if user else 'not found'}")
        return user

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        return await UserRepository.get_by_email(db, email) is not None

    @staticmethod
    async def get_all(db: AsyncSession) -> list[User]:
        try:
            result = await db.execute(select(User).order_by(User.id))
        except SQLAlchemyError as e:
            logger.error(f"Database error listing users: {e}")
            raise RepositoryError("Failed to retrieve users.") from e

        users = list(result.scalars().all())
        logger.info(f"Retrieved {len(users)} users")
        return users

    @staticmethod
    async def update(db: AsyncSession, user: User | None) -> User | None:
        """
        Overwrite a stored user's email, password hash and role.

        Returns:
            The updated user, or None if no user has that id

        Raises:
            NullInputError: If user is None
            EmailAlreadyRegisteredError: If the new email is taken
            RepositoryError: On any other storage failure
        """
        if user is None:
            raise NullInputError("user")

        existing = await UserRepository.get_by_id(db, user.id)
        if existing is None:
            return None

        for field in UserRepository.MUTABLE_FIELDS:
            setattr(existing, field, getattr(user, field))

        try:
            await db.flush()
            await db.refresh(existing)
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Integrity error updating user {user.id}: {e.orig}")
            raise EmailAlreadyRegisteredError(user.email) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error updating user {user.id}: {e}")
            raise RepositoryError(f"Failed to update user with ID {user.id}.") from e

        logger.info(f"Updated user: {existing.id}")
        return existing

    @staticmethod
    async def delete(db: AsyncSession, user_id: int) -> bool:
        user = await UserRepository.get_by_id(db, user_id)
        if user is None:
            return False

        try:
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error deleting user {user_id}: {e}")
            raise RepositoryError(f"Failed to delete user with ID {user_id}.") from e

        logger.info(f"Deleted user: {user_id}")
        return True

    @staticmethod
    async def delete_user_and_student(db: AsyncSession, user_id: int) -> bool:
        """
        Delete an account together with the student record it owns.

        Both rows are removed in the caller's transaction, student first. On
        failure the transaction is rolled back, so either both go or neither does.

        Args:
            db: Database session
            user_id: Id of the account to delete

        Returns:
            True if the account was deleted, False if it does not exist

        Raises:
            RepositoryError: If the delete fails (nothing is deleted)
        """
        user = await UserRepository.get_by_id(db, user_id)
        if user is None:
            return False

        student = await StudentRepository.get_by_user_id(db, user_id)

        try:
            if student is not None:
                await db.delete(student)
                await db.flush()
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Database error deleting user {user_id} and linked student: {e}")
            raise RepositoryError(
                f"Failed to delete user with ID {user_id} and the linked student record."
            ) from e

        if student is not None:
            logger.info(f"Deleted user {user_id} and linked student {student.id}")
        else:
            logger.info(f"Deleted user {user_id} (no linked student)")
        return True
