"""
Users module - Login accounts and roles.
"""

from student_records.modules.users.models import User, UserRole
from student_records.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
