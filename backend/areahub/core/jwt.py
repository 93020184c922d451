"""JWT helpers for identifying the platform user behind a request.

Uses python-jose. Tokens are issued by the platform's auth service; this
backend only needs to mint them for tests and tooling and to verify them.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from areahub.core.config import settings


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token for ``subject`` (usually a user id).

    Examples:
        >>> token = create_access_token("user-123")
        >>> isinstance(token, str)
        True
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"exp": datetime.now(UTC) + expires_delta, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode a token, returning ``None`` when it is expired or invalid."""
    try:
        return jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None


def verify_token(token: str) -> str | None:
    """Return the token subject if the token is valid.

    Examples:
        >>> verify_token(create_access_token("user-123"))
        'user-123'
        >>> verify_token("invalid-token") is None
        True
    """
    payload = decode_access_token(token)
    if payload is None:
        return None
    return payload.get("sub")


__all__ = [
    "create_access_token",
    "decode_access_token",
    "verify_token",
]
