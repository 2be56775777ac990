"""Student schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class StudentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    registration_number: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date | None = None
    department: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", "registration_number", "department")
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class StudentCreate(StudentBase):
    """Request body for creating a student record."""


class StudentUpdate(StudentBase):
    """
    Request body for replacing a student's editable fields.

    Carries no id: the target comes from the URL.
    """


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    registration_number: str
    date_of_birth: date | None
    department: str
    user_id: int | None
    created_at: datetime
    updated_at: datetime
