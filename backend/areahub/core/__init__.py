"""Core application configuration and utilities.

This package contains core functionality including:
- Configuration management (config.py)
- Error taxonomy (exceptions.py)
- Logging setup (logging.py)
- JWT helpers (jwt.py)
"""

from areahub.core.config import settings
from areahub.core.exceptions import (
    AppError,
    ConflictError,
    ErrorKind,
    InvalidInputError,
    NotFoundError,
    ProviderError,
)

__all__ = [
    "AppError",
    "ConflictError",
    "ErrorKind",
    "InvalidInputError",
    "NotFoundError",
    "ProviderError",
    "settings",
]
