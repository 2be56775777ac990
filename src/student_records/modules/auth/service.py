"""
Auth Service Layer

Login, account registration and account administration.

Login failures are not errors: an unknown email and a wrong password both
answer None so callers cannot tell which one it was.
"""

import logging
import secrets
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from student_records.core.config import settings
from student_records.core.email import send_credentials_email
from student_records.core.email_validation import EmailValidator
from student_records.core.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidEmailError,
    PermissionDeniedError,
    StudentRecordsError,
    UserNotFoundError,
)
from student_records.core.security import create_access_token, hash_password, verify_password
from student_records.modules.auth.schemas import RegisterRequest, UserUpdateRequest
from student_records.modules.students.models import Student
from student_records.modules.students.repository import StudentRepository
from student_records.modules.users.models import User, UserRole
from student_records.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

PLACEHOLDER_DEPARTMENT = "Not Assigned"
PLACEHOLDER_REGISTRATION_PREFIX = "PENDING-"


@dataclass
class LoginResult:
    access_token: str
    expires_in: int
    user: User


@dataclass
class UserProfile:
    user: User
    student: Student | None


def _generate_placeholder_registration_number() -> str:
    return f"{PLACEHOLDER_REGISTRATION_PREFIX}{secrets.token_hex(4).upper()}"


async def login(db: AsyncSession, email: str, password: str) -> LoginResult | None:
    """
    Authenticate by email and password.

    Args:
        db: Database session
        email: Login email (exact match)
        password: Plain text password

    Returns:
        LoginResult with a signed access token, or None if the credentials
        are wrong
    """
    user = await UserRepository.get_by_email(db, email)
    if user is None:
        logger.warning(f"Login attempt for non-existent email: {email}")
        return None

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {email}")
        return None

    token = create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "name": user.username,
            "role": user.role.value,
        },
    )

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return LoginResult(
        access_token=token,
        expires_in=settings.jwt_expire_minutes * 60,
        user=user,
    )


async def register(
    db: AsyncSession,
    data: RegisterRequest,
    *,
    email_validator: EmailValidator | None = None,
    send_credentials: bool = False,
) -> User:
    """
    Create an account.

    Student accounts get a placeholder student record linked to them,
    with a generated registration number and no department yet.

    Args:
        db: Database session
        data: Validated registration request
        email_validator: When given, the address must pass the MX check
        send_credentials: Email the new account its password

    Returns:
        The created user

    Raises:
        EmailAlreadyRegisteredError: If the email is taken
        InvalidEmailError: If the address fails the realness check
    """
    logger.info(f"Registering {data.role.value} account for {data.email}")

    if await UserRepository.email_exists(db, data.email):
        logger.warning(f"Registration attempt for existing email: {data.email}")
        raise EmailAlreadyRegisteredError(data.email)

    if email_validator is not None and not await email_validator.is_real_email(data.email):
        logger.warning(f"Registration rejected, email failed realness check: {data.email}")
        raise InvalidEmailError(data.email)

    try:
        user = await UserRepository.create(
            db,
            User(
                username=data.username,
                email=data.email,
                password_hash=hash_password(data.password),
                role=data.role,
            ),
        )

        if user.role == UserRole.STUDENT:
            student = await StudentRepository.create(
                db,
                Student(
                    name=user.username,
                    email=user.email,
                    registration_number=_generate_placeholder_registration_number(),
                    department=PLACEHOLDER_DEPARTMENT,
                    user_id=user.id,
                ),
            )
            logger.info(f"Created placeholder student {student.id} for user {user.id}")
    except StudentRecordsError as e:
        logger.error(f"Registration failed for {data.email}: {e.message}")
        raise

    if send_credentials:
        # Non-blocking: the account exists whether or not the email goes out
        try:
            sent = await send_credentials_email(user.email, user.username, data.password)
            if not sent:
                logger.error(f"Failed to send credentials email to user {user.id}")
        except Exception as e:
            logger.error(f"Exception sending credentials email to user {user.id}: {e}")

    return user


async def get_all_users(db: AsyncSession) -> list[User]:
    return await UserRepository.get_all(db)


async def get_user_with_profile(db: AsyncSession, user_id: int) -> UserProfile:
    """
    Get an account and the student record it owns.

    Raises:
        UserNotFoundError: If no user has that id
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    student = await StudentRepository.get_by_user_id(db, user_id)
    return UserProfile(user=user, student=student)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdateRequest) -> User:
    """
    Change an account's email, password or role.

    A new email is copied to the linked student record.

    Raises:
        UserNotFoundError: If no user has that id
        EmailAlreadyRegisteredError: If the new email belongs to another account
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    # Changes go on a detached copy so nothing is flushed before the repository
    changes = User(
        id=user.id,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
    )

    if data.email is not None and data.email != user.email:
        other = await UserRepository.get_by_email(db, data.email)
        if other is not None:
            raise EmailAlreadyRegisteredError(data.email)
        changes.email = data.email

        student = await StudentRepository.get_by_user_id(db, user_id)
        if student is not None:
            await StudentRepository.update(
                db,
                Student(
                    id=student.id,
                    name=student.name,
                    email=data.email,
                    registration_number=student.registration_number,
                    date_of_birth=student.date_of_birth,
                    department=student.department,
                ),
            )

    if data.password is not None:
        changes.password_hash = hash_password(data.password)
    if data.role is not None:
        changes.role = data.role

    updated = await UserRepository.update(db, changes)
    if updated is None:
        raise UserNotFoundError(user_id)

    logger.info(f"Updated user {user_id}")
    return updated


async def delete_student_account(db: AsyncSession, user_id: int) -> None:
    """
    Delete a Student account and its student record.

    Raises:
        UserNotFoundError: If no user has that id
        PermissionDeniedError: If the account is not a Student account
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    if user.role != UserRole.STUDENT:
        logger.warning(f"Refused to delete non-student account {user_id}")
        raise PermissionDeniedError("Only student accounts can be deleted.")

    if not await UserRepository.delete_user_and_student(db, user_id):
        raise UserNotFoundError(user_id)
