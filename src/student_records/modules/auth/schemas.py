"""Authentication and account schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from student_records.modules.students.schemas import StudentResponse
from student_records.modules.users.models import UserRole

# At least 8 characters with a lowercase letter, an uppercase letter and a digit
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")
PASSWORD_RULE_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one "
    "uppercase letter, one lowercase letter, and one number."
)


def validate_password_strength(password: str) -> str:
    if not PASSWORD_PATTERN.match(password):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return password


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Account registration request (admin only)."""

    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: UserRole = UserRole.STUDENT
    send_credentials: bool = False

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserUpdateRequest(BaseModel):
    """Partial account update. Omitted fields are left unchanged."""

    email: EmailStr | None = None
    password: str | None = None
    role: UserRole | None = None

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_password_strength(v)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime


class UserProfileResponse(UserResponse):
    """An account together with the student record it owns, if any."""

    student: StudentResponse | None = None


class CurrentUserResponse(BaseModel):
    id: int
    email: str
    username: str
    role: str


class LoginResponse(BaseModel):
    """
    Login response.

    The token is also set as the HTTP-only `jwt` cookie; it is returned in
    the body for clients that authenticate with a Bearer header.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: CurrentUserResponse
