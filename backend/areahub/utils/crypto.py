"""Encryption and redaction helpers for OAuth2 credentials.

Access and refresh tokens are stored encrypted with Fernet symmetric
encryption (AES-128-CBC with HMAC). The key comes from ``ENCRYPTION_KEY``.

Features:
- Fernet key generation and environment-based key loading
- String encryption/decryption used by the ``EncryptedText`` column type
- Scrubbing of known secret values out of free text (provider errors)
- Masking of secret fields in dictionaries for logging/display
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import lru_cache
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from areahub.core.config import settings

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"


def generate_fernet_key() -> bytes:
    """Generate a new Fernet encryption key.

    Returns:
        A URL-safe base64-encoded 32-byte key (44 bytes encoded).

    Note:
        Store the key in ``ENCRYPTION_KEY``. Tokens encrypted with a lost key
        cannot be recovered; affected users must relink their services.
    """
    return Fernet.generate_key()


@lru_cache
def get_fernet_key() -> bytes:
    """Load the Fernet key from settings, or generate a process-local one.

    The result is cached so every encrypt/decrypt in the process uses the
    same key.

    Raises:
        ValueError: If ``ENCRYPTION_KEY`` is set but is not a valid Fernet key.
    """
    if settings.ENCRYPTION_KEY:
        key = settings.ENCRYPTION_KEY.encode("utf-8")
        try:
            Fernet(key)
        except ValueError as e:
            raise ValueError(
                f"Invalid ENCRYPTION_KEY: {e}. "
                "Generate a valid key using: cryptography.fernet.Fernet.generate_key()"
            ) from e
        return key

    logger.warning(
        "ENCRYPTION_KEY is not set; using an ephemeral key for this process",
        extra={"context": {"action": "load_encryption_key"}},
    )
    return generate_fernet_key()


def encrypt_str(value: str, key: bytes | None = None) -> str:
    """Encrypt ``value`` and return the Fernet token as text."""
    fernet = Fernet(key or get_fernet_key())
    return fernet.encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_str(token: str, key: bytes | None = None) -> str:
    """Decrypt a Fernet token produced by :func:`encrypt_str`.

    Raises:
        ValueError: If the token was encrypted with another key or is corrupt.
    """
    fernet = Fernet(key or get_fernet_key())
    try:
        return fernet.decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken as e:
        raise ValueError("Stored credential could not be decrypted") from e


def scrub_secrets(text: str, secrets: Iterable[str | None]) -> str:
    """Replace every occurrence of each non-empty secret in ``text``.

    Example:
        >>> scrub_secrets("bad code abc for client s3cr3t", ["abc", "s3cr3t"])
        'bad code [REDACTED] for client [REDACTED]'
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


# Field names whose values are never shown
_SENSITIVE_FIELDS = {
    "access_token",
    "refresh_token",
    "id_token",
    "client_secret",
    "code",
    "code_verifier",
    "password",
    "secret",
    "token",
}


def mask_secret_fields(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return a copy of ``data`` with sensitive values fully masked.

    Nested dictionaries are handled recursively. ``None`` values stay ``None``
    so callers can still tell a missing credential from a present one.

    Example:
        >>> mask_secret_fields({"access_token": "ya29.abc", "scope": "email"})
        {'access_token': '***', 'scope': 'email'}
    """
    if data is None:
        return None

    masked: dict[str, Any] = {}
    for key, value in data.items():
        if key in _SENSITIVE_FIELDS:
            masked[key] = None if value is None else "***"
        elif isinstance(value, dict):
            masked[key] = mask_secret_fields(value)
        else:
            masked[key] = value
    return masked


__all__ = [
    "REDACTED",
    "decrypt_str",
    "encrypt_str",
    "generate_fernet_key",
    "get_fernet_key",
    "mask_secret_fields",
    "scrub_secrets",
]
