"""Pydantic schemas for request/response validation."""

from areahub.schemas.base import BaseSchema, ErrorResponse, MessageResponse
from areahub.schemas.execution import (
    CleanupResult,
    ExecutionComplete,
    ExecutionFail,
    ExecutionRecordCreate,
    ExecutionRecordResponse,
    ExecutionRecordUpdate,
    ExecutionStats,
)
from areahub.schemas.service_link import (
    LinkEmailUpdate,
    LinkServiceRequest,
    OAuth2AccountCreate,
    ServiceAccountLinkResponse,
    ServiceSummary,
    UserSummary,
)

__all__ = [
    # Base
    "BaseSchema",
    "ErrorResponse",
    "MessageResponse",
    # Execution
    "CleanupResult",
    "ExecutionComplete",
    "ExecutionFail",
    "ExecutionRecordCreate",
    "ExecutionRecordResponse",
    "ExecutionRecordUpdate",
    "ExecutionStats",
    # Service links
    "LinkEmailUpdate",
    "LinkServiceRequest",
    "OAuth2AccountCreate",
    "ServiceAccountLinkResponse",
    "ServiceSummary",
    "UserSummary",
]
