"""Execution record model for AREA runs.

An ExecutionRecord tracks one attempted run of an AREA's reaction, from the
moment the trigger fires until a terminal state is reached.

The duration invariant lives here so every mutation path shares one
formula: ``execution_time_ms`` is set only when both ``started_at`` and
``completed_at`` are present and equals their difference in whole
milliseconds, never negative.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import JSON, BigInteger, Enum, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from areahub.models.base import GUID, Base, TimestampMixin, UTCDateTime, UUIDMixin
from areahub.models.enums import ExecutionStatus

# Use JSONB for PostgreSQL, JSON for other databases (like SQLite for testing)
JSONType = JSON().with_variant(JSONB(), "postgresql")

_ONE_MS = timedelta(milliseconds=1)


def compute_execution_time_ms(
    started_at: datetime | None,
    completed_at: datetime | None,
) -> int | None:
    """Return the run duration in whole milliseconds.

    Returns ``None`` unless both timestamps are present. A completion earlier
    than the start (clock skew, replayed records) yields 0.

    Example:
        >>> from datetime import UTC
        >>> compute_execution_time_ms(
        ...     datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC),
        ...     datetime(2024, 1, 1, 12, 1, 30, tzinfo=UTC),
        ... )
        90000
    """
    if started_at is None or completed_at is None:
        return None
    return max(0, (completed_at - started_at) // _ONE_MS)


class ExecutionRecord(UUIDMixin, TimestampMixin, Base):
    """One attempted run of an AREA.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        area_id: The AREA that fired
        status: Current execution status
        trigger_data: Payload produced by the trigger (opaque)
        execution_result: Payload produced by the reaction (opaque, nullable)
        error_message: Failure description (nullable)
        started_at: When the run started; fixed at creation
        completed_at: When a terminal state was reached; never cleared
        execution_time_ms: Derived duration (nullable)
        created_at: Timestamp of creation (from TimestampMixin)
        updated_at: Timestamp of last update (from TimestampMixin)
    """

    __tablename__ = "area_executions"

    area_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("areas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[ExecutionStatus] = mapped_column(
        Enum(
            ExecutionStatus,
            name="execution_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ExecutionStatus.PENDING,
        server_default=ExecutionStatus.PENDING.value,
        index=True,
    )

    trigger_data: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )

    execution_result: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Timing fields
    started_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        index=True,
    )

    execution_time_ms: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    @property
    def is_terminal(self) -> bool:
        """Check if execution is in SUCCESS, FAILED, CANCELLED or SKIPPED."""
        return ExecutionStatus(self.status).is_terminal

    def refresh_execution_time(self) -> None:
        """Recompute ``execution_time_ms`` from the current timestamps.

        Clears it when either timestamp is missing.
        """
        self.execution_time_ms = compute_execution_time_ms(self.started_at, self.completed_at)

    def finish(self, status: ExecutionStatus, completed_at: datetime) -> None:
        """Move to a terminal ``status`` and stamp the completion time.

        No transition guard is applied: finishing a record that is not
        RUNNING is allowed.
        """
        self.status = status
        self.completed_at = completed_at
        self.refresh_execution_time()

    def __repr__(self) -> str:
        return (
            f"<ExecutionRecord id={self.id} area_id={self.area_id} "
            f"status={self.status}>"
        )
