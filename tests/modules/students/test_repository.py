"""
Tests for the student repository against a real SQLite database.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from student_records.core.exceptions import (
    DuplicateRegistrationNumberError,
    NullInputError,
    RepositoryError,
)
from student_records.modules.students.models import Student
from student_records.modules.students.repository import StudentRepository


def make_student(registration_number: str = "REG-001", **overrides) -> Student:
    fields = {
        "name": "Alice Smith",
        "email": "alice@school.edu",
        "registration_number": registration_number,
        "date_of_birth": date(2004, 5, 17),
        "department": "Computer Science",
    }
    fields.update(overrides)
    return Student(**fields)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_round_trips(self, db_session):
        created = await StudentRepository.create(db_session, make_student())
        await db_session.commit()

        assert created.id is not None
        fetched = await StudentRepository.get_by_id(db_session, created.id)
        assert fetched.name == "Alice Smith"
        assert fetched.email == "alice@school.edu"
        assert fetched.registration_number == "REG-001"
        assert fetched.date_of_birth == date(2004, 5, 17)
        assert fetched.department == "Computer Science"
        assert fetched.user_id is None

    @pytest.mark.asyncio
    async def test_create_none_raises(self, db_session):
        with pytest.raises(NullInputError):
            await StudentRepository.create(db_session, None)

    @pytest.mark.asyncio
    async def test_duplicate_registration_number_conflicts(self, db_session):
        await StudentRepository.create(db_session, make_student("REG-001"))
        await db_session.commit()

        with pytest.raises(DuplicateRegistrationNumberError) as exc_info:
            await StudentRepository.create(
                db_session, make_student("REG-001", email="bob@school.edu")
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.field == "registration_number"

    @pytest.mark.asyncio
    async def test_storage_failure_is_wrapped(self, db_session, monkeypatch):
        monkeypatch.setattr(
            db_session, "flush", AsyncMock(side_effect=OperationalError("INSERT", {}, Exception()))
        )

        with pytest.raises(RepositoryError, match="REG-001"):
            await StudentRepository.create(db_session, make_student())


class TestLookups:
    @pytest.mark.asyncio
    async def test_missing_id_returns_none(self, db_session):
        assert await StudentRepository.get_by_id(db_session, 999) is None

    @pytest.mark.asyncio
    async def test_get_by_registration_number_and_email(self, db_session):
        await StudentRepository.create(db_session, make_student("REG-007", email="x@school.edu"))

        by_reg = await StudentRepository.get_by_registration_number(db_session, "REG-007")
        by_email = await StudentRepository.get_by_email(db_session, "x@school.edu")

        assert by_reg is not None
        assert by_email.id == by_reg.id
        assert await StudentRepository.get_by_registration_number(db_session, "NOPE") is None

    @pytest.mark.asyncio
    async def test_get_all_ordered_by_id(self, db_session):
        for n in (3, 1, 2):
            await StudentRepository.create(db_session, make_student(f"REG-{n}"))

        students = await StudentRepository.get_all(db_session)

        assert [s.registration_number for s in students] == ["REG-3", "REG-1", "REG-2"]
        assert [s.id for s in students] == sorted(s.id for s in students)

    @pytest.mark.asyncio
    async def test_get_all_empty(self, db_session):
        assert await StudentRepository.get_all(db_session) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "lookup, argument",
        [
            ("get_by_id", 1),
            ("get_by_email", "x@school.edu"),
            ("get_by_registration_number", "REG-001"),
            ("get_by_user_id", 1),
        ],
    )
    async def test_lookup_storage_failure_is_wrapped(
        self, db_session, monkeypatch, lookup, argument
    ):
        monkeypatch.setattr(
            db_session,
            "execute",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception())),
        )

        with pytest.raises(RepositoryError) as exc_info:
            await getattr(StudentRepository, lookup)(db_session, argument)

        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_overwrites_mutable_fields(self, db_session):
        created = await StudentRepository.create(db_session, make_student())
        await db_session.commit()

        updated = await StudentRepository.update(
            db_session,
            Student(
                id=created.id,
                name="Alice Jones",
                email="alice.jones@school.edu",
                registration_number="REG-002",
                date_of_birth=date(2004, 6, 1),
                department="Mathematics",
                user_id=12345,
            ),
        )

        assert updated.id == created.id
        assert updated.name == "Alice Jones"
        assert updated.email == "alice.jones@school.edu"
        assert updated.registration_number == "REG-002"
        assert updated.date_of_birth == date(2004, 6, 1)
        assert updated.department == "Mathematics"
        # Ownership is not a caller-editable field
        assert updated.user_id is None

    @pytest.mark.asyncio
    async def test_update_missing_returns_none_and_inserts_nothing(self, db_session):
        result = await StudentRepository.update(db_session, make_student(id=404))

        assert result is None
        assert await StudentRepository.get_all(db_session) == []

    @pytest.mark.asyncio
    async def test_update_none_raises(self, db_session):
        with pytest.raises(NullInputError):
            await StudentRepository.update(db_session, None)

    @pytest.mark.asyncio
    async def test_update_to_taken_registration_number_conflicts(self, db_session):
        await StudentRepository.create(db_session, make_student("REG-001"))
        second = await StudentRepository.create(db_session, make_student("REG-002"))
        await db_session.commit()

        with pytest.raises(DuplicateRegistrationNumberError):
            await StudentRepository.update(
                db_session, make_student("REG-001", id=second.id)
            )


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_existing(self, db_session):
        created = await StudentRepository.create(db_session, make_student())

        assert await StudentRepository.delete(db_session, created.id) is True
        assert await StudentRepository.get_by_id(db_session, created.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, db_session):
        assert await StudentRepository.delete(db_session, 999) is False
