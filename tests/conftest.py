"""
Shared test fixtures.

- Every test gets a fresh SQLite database file (aiosqlite), created from
  the ORM metadata, with foreign keys enforced.
- get_db is overridden so API requests use the test database, with the
  same commit/rollback behaviour as production.
- bcrypt runs at its minimum cost and rate limiting is off unless a test
  turns it on.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from student_records.core import rate_limit
from student_records.core.config import settings
from student_records.core.database import Base, get_db
from student_records.core.security import create_access_token, hash_password
from student_records.main import app
from student_records.modules.students.models import Student
from student_records.modules.users.models import User, UserRole

DEFAULT_PASSWORD = "Passw0rdOk"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    rate_limit.reset_memory_store()
    yield settings
    rate_limit.reset_memory_store()


def _enable_foreign_keys(dbapi_connection, _connection_record):
    # SQLite leaves FK enforcement (and ON DELETE CASCADE) off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client backed by the test database. The app lifespan is not run."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory that commits a user (and, for students, a linked record)."""

    async def _make_user(
        email: str,
        role: UserRole = UserRole.STUDENT,
        username: str = "Test User",
        password: str = DEFAULT_PASSWORD,
        registration_number: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                username=username,
                email=email,
                password_hash=hash_password(password),
                role=role,
            )
            session.add(user)
            await session.flush()
            if registration_number is not None:
                session.add(
                    Student(
                        name=username,
                        email=email,
                        registration_number=registration_number,
                        department="Physics",
                        user_id=user.id,
                    )
                )
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


def token_for(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        additional_claims={"email": user.email, "name": user.username, "role": user.role.value},
    )


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


@pytest.fixture
def user_token() -> Callable[[User], str]:
    return token_for


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("admin@school.edu", role=UserRole.ADMIN, username="Admin")


@pytest.fixture
async def student_user(make_user) -> User:
    return await make_user(
        "alice@school.edu",
        role=UserRole.STUDENT,
        username="Alice",
        registration_number="REG-ALICE",
    )
