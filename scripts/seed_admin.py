"""
Seed Admin User

Creates the first Admin account. Registration is admin-only, so this is
how a fresh deployment gets its first administrator.

Credentials come from the environment:
    ADMIN_EMAIL, ADMIN_USERNAME (default "Administrator"), ADMIN_PASSWORD
The password is prompted for when ADMIN_PASSWORD is unset.

Usage:
    python scripts/seed_admin.py
"""

import asyncio
import getpass
import os
import sys

from student_records.core.database import async_session_maker, close_db
from student_records.core.exceptions import StudentRecordsError
from student_records.core.security import hash_password
from student_records.modules.auth.schemas import PASSWORD_PATTERN, PASSWORD_RULE_MESSAGE
from student_records.modules.users.models import User, UserRole
from student_records.modules.users.repository import UserRepository


async def seed_admin(email: str, username: str, password: str) -> int:
    """Create the admin user if it doesn't exist. Returns a process exit code."""
    async with async_session_maker() as db:
        existing = await UserRepository.get_by_email(db, email)
        if existing:
            print(f"User already exists: {email}")
            print(f"  ID: {existing.id}")
            print(f"  Role: {existing.role.value}")
            return 0

        try:
            admin = await UserRepository.create(
                db,
                User(
                    username=username,
                    email=email,
                    password_hash=hash_password(password),
                    role=UserRole.ADMIN,
                ),
            )
            await db.commit()
        except StudentRecordsError as e:
            print(f"Failed to create admin: {e.message}")
            return 1

        print("Admin created successfully!")
        print(f"  Email: {admin.email}")
        print(f"  Username: {admin.username}")
        print(f"  ID: {admin.id}")
    return 0


def main() -> int:
    email = os.getenv("ADMIN_EMAIL")
    if not email:
        print("ADMIN_EMAIL is required")
        return 1
    username = os.getenv("ADMIN_USERNAME", "Administrator")
    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if not PASSWORD_PATTERN.match(password):
        print(PASSWORD_RULE_MESSAGE)
        return 1

    async def run() -> int:
        try:
            return await seed_admin(email, username, password)
        finally:
            await close_db()

    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
