"""Authentication module - Login, registration and account administration."""

from student_records.modules.auth.router import router
from student_records.modules.auth.schemas import LoginRequest, LoginResponse, RegisterRequest

__all__ = ["router", "LoginRequest", "LoginResponse", "RegisterRequest"]
