"""Security utilities - JWT issuing and verification."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from trekmate.core.config import settings


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Create JWT access token."""
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.jwt_access_token_expire_minutes
        )

    to_encode = {
        "sub": subject,
        "exp": expire,
        "iat": datetime.now(UTC),
        "type": "access",
    }
    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict[str, Any] | None:
    """Verify JWT token and return payload."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError:
        return None


def get_access_subject(token: str | None) -> str | None:
    """Return the subject of a valid access token, or None.

    Shared by the HTTP dependency and the Socket.IO connect handler.
    """
    if not token:
        return None
    payload = verify_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None
