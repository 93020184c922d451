"""Base Pydantic schemas with common patterns.

This module defines base schemas shared by the API.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration for all schemas.

    Configures Pydantic v2 settings for consistent behavior across all schemas.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseSchema):
    """Standard error response schema."""

    error: str = Field(
        ...,
        description="Error kind identifier",
        examples=["not_found", "conflict", "provider_error"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Service account link not found"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional non-secret error details",
        examples=[{"provider": "google", "status_code": 400}],
    )


class MessageResponse(BaseSchema):
    """Simple message response schema."""

    message: str = Field(
        ...,
        description="Response message",
        examples=["Operation completed successfully"],
    )


__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "MessageResponse",
]
