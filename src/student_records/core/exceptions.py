"""
Domain Errors

Every error carries a machine-readable error code and the HTTP status a
router should answer with. Repositories and services raise these; routers
and the global handler in main.py translate them into responses.
"""

from fastapi import HTTPException, status


class StudentRecordsError(Exception):
    """Base exception for student records errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(StudentRecordsError):
    """Raised when an operation requires a record that does not exist."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class StudentNotFoundError(NotFoundError):
    def __init__(self, student_id: int):
        self.student_id = student_id
        super().__init__(
            message=f"Student with ID {student_id} not found.",
            error_code="STUDENT_NOT_FOUND",
        )


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            message=f"User with ID {user_id} not found.",
            error_code="USER_NOT_FOUND",
        )


class ConflictError(StudentRecordsError):
    """Raised when a uniqueness rule is violated."""

    def __init__(self, message: str, field: str | None = None, error_code: str = "CONFLICT"):
        self.field = field
        super().__init__(message=message, error_code=error_code, status_code=409)


class EmailAlreadyRegisteredError(ConflictError):
    def __init__(self, email: str):
        super().__init__(
            message=f"Email {email} is already registered.",
            field="email",
            error_code="EMAIL_ALREADY_REGISTERED",
        )


class DuplicateRegistrationNumberError(ConflictError):
    def __init__(self, registration_number: str):
        super().__init__(
            message=f"Registration number {registration_number} is already in use.",
            field="registration_number",
            error_code="DUPLICATE_REGISTRATION_NUMBER",
        )


class NullInputError(StudentRecordsError, ValueError):
    """Raised when a required argument is missing."""

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(
            message=f"{argument} cannot be null.",
            error_code="NULL_INPUT",
            status_code=400,
        )


class InvalidEmailError(StudentRecordsError):
    """Raised when an address is malformed or its domain cannot receive mail."""

    def __init__(self, email: str):
        super().__init__(
            message=f"Invalid or non-existent email address: {email}",
            error_code="INVALID_EMAIL",
            status_code=422,
        )


class PermissionDeniedError(StudentRecordsError):
    """Raised when an operation is not allowed for the target record."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="PERMISSION_DENIED", status_code=403)


class RepositoryError(StudentRecordsError):
    """Wraps an unexpected storage failure with context."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="DATABASE_ERROR", status_code=500)


def error_detail(error: StudentRecordsError) -> dict:
    """Structured error body: {"error": CODE, "message": str} plus "field" for conflicts."""
    detail = {"error": error.error_code, "message": error.message}
    if isinstance(error, ConflictError) and error.field:
        detail["field"] = error.field
    return detail


def to_http_exception(error: StudentRecordsError) -> HTTPException:
    """Translate a domain error. Server-side failures get the generic message."""
    if error.status_code >= 500:
        return internal_error()
    return HTTPException(status_code=error.status_code, detail=error_detail(error))


def internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )
