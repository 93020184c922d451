"""SQLAlchemy models.

This package contains all database models.
"""

from areahub.models.area import Area
from areahub.models.base import Base, TimestampMixin, UUIDMixin
from areahub.models.enums import (
    TERMINAL_STATUSES,
    ExecutionStatus,
    LinkPlatform,
    OAuthProvider,
)
from areahub.models.execution import ExecutionRecord, compute_execution_time_ms
from areahub.models.service import Service
from areahub.models.service_link import ServiceAccountLink
from areahub.models.user import User

__all__ = [
    # Base classes
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    # Enums
    "ExecutionStatus",
    "LinkPlatform",
    "OAuthProvider",
    "TERMINAL_STATUSES",
    # Models
    "Area",
    "ExecutionRecord",
    "Service",
    "ServiceAccountLink",
    "User",
    # Helpers
    "compute_execution_time_ms",
]
