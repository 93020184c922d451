"""Pydantic schemas for AREA execution records.

This module defines request/response schemas for the execution endpoints
and the aggregate statistics shape.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Any
from uuid import UUID  # noqa: TC003 - Required at runtime for Pydantic

from pydantic import Field

from areahub.models.enums import ExecutionStatus
from areahub.schemas.base import BaseSchema

# =============================================================================
# Requests
# =============================================================================


class ExecutionRecordCreate(BaseSchema):
    """Schema for creating an execution record.

    ``status`` and ``started_at`` default to PENDING and "now"; when given
    they are stored verbatim so a scheduler can replay runs deterministically.
    """

    area_id: UUID = Field(
        ...,
        description="ID of the AREA that fired",
    )
    trigger_data: dict[str, Any] = Field(
        default_factory=dict,
        description="Data that triggered the execution",
        examples=[{"issue_number": 42, "title": "Bug found"}],
    )
    status: ExecutionStatus | None = Field(
        default=None,
        description="Initial status (defaults to pending)",
        examples=["pending"],
    )
    started_at: datetime | None = Field(
        default=None,
        description="When the execution started (defaults to now)",
        examples=["2024-01-25T10:30:00Z"],
    )
    completed_at: datetime | None = Field(
        default=None,
        description="When the execution completed (replayed records only)",
    )
    execution_result: dict[str, Any] | None = Field(
        default=None,
        description="Result data from the execution",
        examples=[{"message_id": "987654321", "success": True}],
    )
    error_message: str | None = Field(
        default=None,
        description="Error message if execution failed",
        examples=["Network timeout"],
    )


class ExecutionRecordUpdate(BaseSchema):
    """Partial update of an execution record.

    Only fields present in the request are applied. Any field may be
    overwritten, including ``status`` and ``completed_at``. The duration is
    derived from the timestamps and cannot be set directly.
    """

    status: ExecutionStatus | None = None
    trigger_data: dict[str, Any] | None = None
    execution_result: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ExecutionComplete(BaseSchema):
    """Body for completing an execution."""

    execution_result: dict[str, Any] | None = Field(
        default=None,
        description="Result data from the reaction",
    )


class ExecutionFail(BaseSchema):
    """Body for failing an execution."""

    error_message: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="Description of the failure",
        examples=["Discord webhook returned 404"],
    )


# =============================================================================
# Responses
# =============================================================================


class ExecutionRecordResponse(BaseSchema):
    """Execution record as returned by the API."""

    id: UUID
    area_id: UUID
    status: ExecutionStatus
    trigger_data: dict[str, Any] = Field(default_factory=dict)
    execution_result: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    execution_time_ms: int | None = None
    created_at: datetime
    updated_at: datetime


class ExecutionStats(BaseSchema):
    """Aggregate execution counts and mean duration.

    ``completed`` counts SUCCESS records. ``avg_execution_time_ms`` is the
    mean over records that carry a duration and is ``None`` when none do.
    """

    total: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    running: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    cancelled: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    avg_execution_time_ms: float | None = None


class CleanupResult(BaseSchema):
    """Number of execution records removed by a bulk delete."""

    deleted: int = Field(..., ge=0, description="Number of records deleted")
    older_than_days: int | None = Field(default=None, ge=0)


__all__ = [
    "CleanupResult",
    "ExecutionComplete",
    "ExecutionFail",
    "ExecutionRecordCreate",
    "ExecutionRecordResponse",
    "ExecutionRecordUpdate",
    "ExecutionStats",
]
