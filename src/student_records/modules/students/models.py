"""
Student Models
"""

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from student_records.modules.shared import BaseModel


class Student(BaseModel):
    """
    A student record.

    `user_id` links the record to the Student account that owns it.
    Deleting the account deletes the record.
    """

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    registration_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
    )
    # NULL for placeholder records created at registration
    date_of_birth: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )
    department: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Student(id={self.id}, registration_number={self.registration_number}, "
            f"email={self.email})>"
        )
