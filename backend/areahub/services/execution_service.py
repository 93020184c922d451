"""Execution lifecycle service for AREA runs.

States: PENDING -> RUNNING -> SUCCESS | FAILED | CANCELLED, plus SKIPPED
straight from PENDING. Transitions are permissive: no move is rejected for
being out of order, and the only failure is NotFound for an unknown id.

Every path that reaches a terminal state computes ``execution_time_ms``
through ``ExecutionRecord.refresh_execution_time`` so the named helpers
and the generic ``update`` share one duration formula.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from areahub.core.clock import Clock, ensure_utc, utc_now
from areahub.core.config import settings
from areahub.core.exceptions import NotFoundError
from areahub.core.logging import get_logger
from areahub.models.area import Area
from areahub.models.enums import TERMINAL_STATUSES, ExecutionStatus
from areahub.models.execution import ExecutionRecord
from areahub.services.notifier import dispatch_notification

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from areahub.schemas.execution import ExecutionRecordCreate, ExecutionRecordUpdate
    from areahub.services.notifier import AreaTriggerNotifier

# Columns that cannot be cleared through update()
_NON_NULLABLE_UPDATES = frozenset({"status", "trigger_data", "completed_at"})

_DATETIME_FIELDS = frozenset({"started_at", "completed_at"})


class ExecutionLifecycleManager:
    """Creates execution records and drives them through their lifecycle.

    The manager flushes but does not commit; the request scope owns the
    transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: AreaTriggerNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the manager.

        Args:
            session: Async SQLAlchemy session
            notifier: Receives one trigger notification per created record
            clock: Source of "now" (UTC)
        """
        self.session = session
        self.notifier = notifier
        self._clock = clock
        self.logger = get_logger(__name__)

    # -------------------------------------------------------------------------
    # Create / transitions
    # -------------------------------------------------------------------------

    async def create(self, data: ExecutionRecordCreate) -> ExecutionRecord:
        """Create an execution record and notify the area.

        ``status`` defaults to PENDING and ``started_at`` to now; supplied
        values are stored verbatim.

        Raises:
            NotFoundError: If the area does not exist.
        """
        if await self.session.get(Area, data.area_id) is None:
            raise NotFoundError(f"Area {data.area_id} not found")

        now = self._clock()
        record = ExecutionRecord(
            area_id=data.area_id,
            status=data.status or ExecutionStatus.PENDING,
            trigger_data=data.trigger_data,
            execution_result=data.execution_result,
            error_message=data.error_message,
            started_at=ensure_utc(data.started_at) or now,
            completed_at=ensure_utc(data.completed_at),
            created_at=now,
            updated_at=now,
        )
        record.refresh_execution_time()

        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)

        self.logger.info(
            "Execution record created",
            extra={
                "context": {
                    "execution_id": str(record.id),
                    "area_id": str(record.area_id),
                    "status": record.status.value,
                }
            },
        )

        if self.notifier is not None:
            dispatch_notification(self.notifier, record.area_id, now)
        return record

    async def start_execution(self, execution_id: uuid.UUID) -> ExecutionRecord:
        """Set status to RUNNING. ``started_at`` is left as created."""
        record = await self._get_or_raise(execution_id)
        record.status = ExecutionStatus.RUNNING
        return await self._save(record, "start")

    async def complete_execution(
        self,
        execution_id: uuid.UUID,
        execution_result: dict[str, Any] | None = None,
    ) -> ExecutionRecord:
        """Set status to SUCCESS, store the result and stamp completion."""
        record = await self._get_or_raise(execution_id)
        record.execution_result = execution_result
        record.finish(ExecutionStatus.SUCCESS, self._clock())
        return await self._save(record, "complete")

    async def fail_execution(
        self,
        execution_id: uuid.UUID,
        error_message: str,
    ) -> ExecutionRecord:
        """Set status to FAILED, store the error and stamp completion."""
        record = await self._get_or_raise(execution_id)
        record.error_message = error_message
        record.finish(ExecutionStatus.FAILED, self._clock())
        return await self._save(record, "fail")

    async def cancel_execution(self, execution_id: uuid.UUID) -> ExecutionRecord:
        """Set status to CANCELLED and stamp completion."""
        record = await self._get_or_raise(execution_id)
        record.finish(ExecutionStatus.CANCELLED, self._clock())
        return await self._save(record, "cancel")

    async def skip_execution(self, execution_id: uuid.UUID) -> ExecutionRecord:
        """Set status to SKIPPED (trigger evaluated negative) and stamp completion."""
        record = await self._get_or_raise(execution_id)
        record.finish(ExecutionStatus.SKIPPED, self._clock())
        return await self._save(record, "skip")

    async def update(
        self,
        execution_id: uuid.UUID,
        data: ExecutionRecordUpdate,
    ) -> ExecutionRecord:
        """Overwrite the fields present in ``data``.

        A terminal status without a completion time gets one stamped.
        The duration is always recomputed from the resulting timestamps.
        ``completed_at`` is never cleared.
        """
        record = await self._get_or_raise(execution_id)

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field in _NON_NULLABLE_UPDATES:
                continue
            if field in _DATETIME_FIELDS:
                value = ensure_utc(value)
            setattr(record, field, value)

        if record.is_terminal and record.completed_at is None:
            record.completed_at = self._clock()
        record.refresh_execution_time()

        return await self._save(record, "update")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_one(self, execution_id: uuid.UUID) -> ExecutionRecord:
        """Get an execution record by id.

        Raises:
            NotFoundError: If the record does not exist.
        """
        return await self._get_or_raise(execution_id)

    async def find_all(self) -> list[ExecutionRecord]:
        """List every record, newest first."""
        return await self._list(select(ExecutionRecord))

    async def find_by_area_id(self, area_id: uuid.UUID) -> list[ExecutionRecord]:
        """List an area's records, newest first."""
        return await self._list(select(ExecutionRecord).where(ExecutionRecord.area_id == area_id))

    async def find_by_status(self, status: ExecutionStatus) -> list[ExecutionRecord]:
        """List records in ``status``, newest first."""
        return await self._list(select(ExecutionRecord).where(ExecutionRecord.status == status))

    async def find_recent_executions(self, limit: int | None = None) -> list[ExecutionRecord]:
        """List the ``limit`` most recently created records."""
        if limit is None:
            limit = settings.EXECUTION_RECENT_LIMIT
        return await self._list(select(ExecutionRecord).limit(limit))

    async def find_long_running_executions(
        self,
        threshold_minutes: int | None = None,
    ) -> list[ExecutionRecord]:
        """List RUNNING records that started more than ``threshold_minutes`` ago.

        Ordered oldest start first.
        """
        if threshold_minutes is None:
            threshold_minutes = settings.EXECUTION_LONG_RUNNING_MINUTES
        cutoff = self._clock() - timedelta(minutes=threshold_minutes)
        result = await self.session.execute(
            select(ExecutionRecord)
            .where(
                ExecutionRecord.status == ExecutionStatus.RUNNING,
                ExecutionRecord.started_at.is_not(None),
                ExecutionRecord.started_at < cutoff,
            )
            .order_by(ExecutionRecord.started_at.asc())
        )
        return list(result.scalars().all())

    async def find_failed_executions(
        self,
        area_id: uuid.UUID | None = None,
    ) -> list[ExecutionRecord]:
        """List FAILED records, optionally for one area only."""
        query = select(ExecutionRecord).where(ExecutionRecord.status == ExecutionStatus.FAILED)
        if area_id is not None:
            query = query.where(ExecutionRecord.area_id == area_id)
        return await self._list(query)

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def remove(self, execution_id: uuid.UUID) -> None:
        """Delete one record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        record = await self._get_or_raise(execution_id)
        await self.session.delete(record)
        await self.session.flush()

    async def remove_by_area_id(self, area_id: uuid.UUID) -> int:
        """Delete every record of an area and return how many were deleted."""
        result = await self.session.execute(
            delete(ExecutionRecord)
            .where(ExecutionRecord.area_id == area_id)
            .execution_options(synchronize_session=False)
        )
        return max(result.rowcount or 0, 0)

    async def cleanup(self, older_than_days: int | None = None) -> int:
        """Delete terminal records completed before the cutoff.

        Records without ``completed_at`` are kept. Returns the number of
        deleted rows, 0 when the driver reports none.
        """
        if older_than_days is None:
            older_than_days = settings.EXECUTION_CLEANUP_DAYS
        cutoff = self._clock() - timedelta(days=older_than_days)

        result = await self.session.execute(
            delete(ExecutionRecord)
            .where(
                ExecutionRecord.status.in_(TERMINAL_STATUSES),
                ExecutionRecord.completed_at.is_not(None),
                ExecutionRecord.completed_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        deleted = max(result.rowcount or 0, 0)

        self.logger.info(
            "Execution cleanup finished",
            extra={"context": {"older_than_days": older_than_days, "deleted": deleted}},
        )
        return deleted

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_or_raise(self, execution_id: uuid.UUID) -> ExecutionRecord:
        record = await self.session.get(ExecutionRecord, execution_id)
        if record is None:
            raise NotFoundError(f"Execution record {execution_id} not found")
        return record

    async def _list(self, query: Any) -> list[ExecutionRecord]:
        # Records sharing a creation timestamp fall back to id order
        result = await self.session.execute(
            query.order_by(ExecutionRecord.created_at.desc(), ExecutionRecord.id.desc())
        )
        return list(result.scalars().all())

    async def _save(self, record: ExecutionRecord, action: str) -> ExecutionRecord:
        record.updated_at = self._clock()
        await self.session.flush()
        await self.session.refresh(record)
        self.logger.info(
            "Execution record updated",
            extra={
                "context": {
                    "execution_id": str(record.id),
                    "action": action,
                    "status": record.status.value,
                    "execution_time_ms": record.execution_time_ms,
                }
            },
        )
        return record


__all__ = ["ExecutionLifecycleManager"]
