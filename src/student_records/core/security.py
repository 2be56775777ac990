"""
Security Utilities

Password hashing (bcrypt) and JWT issuance/validation (python-jose).

- Passwords are hashed with a per-password salt and a configurable cost
  factor. Plaintext passwords are never stored or compared directly.
- Tokens are HMAC-SHA256 signed and carry issuer/audience claims that are
  validated on every decode.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from student_records.core.config import settings

logger = logging.getLogger(__name__)

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        password_bytes = password_bytes[:BCRYPT_MAX_PASSWORD_BYTES]
    return password_bytes


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plain text password

    Returns:
        Versioned bcrypt hash string (e.g. "$2b$12$...")
    """
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a stored bcrypt hash.

    The comparison is done by bcrypt in constant time. A malformed stored
    hash never verifies.

    Args:
        password: Plain text password to check
        password_hash: Stored bcrypt hash

    Returns:
        True if the password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Password verification against a malformed hash")
        return False


def create_access_token(
    subject: str,
    additional_claims: dict[str, Any] | None = None,
    expires_minutes: int | None = None,
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Token subject (the user's id)
        additional_claims: Extra claims to embed (email, name, role)
        expires_minutes: Lifetime override, defaults to settings.jwt_expire_minutes

    Returns:
        Encoded JWT string
    """
    now = datetime.now(UTC)
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes

    payload: dict[str, Any] = dict(additional_claims or {})
    payload.update(
        {
            "sub": subject,
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
            "type": "access",
        }
    )
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a token.

    Checks signature, algorithm, expiry, issuer and audience.

    Args:
        token: Encoded JWT string

    Returns:
        The claims dict, or None if the token is invalid for any reason
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.debug(f"Token validation failed: {e}")
        return None
