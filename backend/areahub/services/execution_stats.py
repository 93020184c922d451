"""Read-only aggregation over execution records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from areahub.models.enums import ExecutionStatus
from areahub.models.execution import ExecutionRecord
from areahub.schemas.execution import ExecutionStats

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


class ExecutionStatsAggregator:
    """Counts per status and mean duration, globally or for one area."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def count(
        self,
        area_id: uuid.UUID | None = None,
        status: ExecutionStatus | None = None,
    ) -> int:
        """Count records matching the optional area and status filters."""
        query = select(func.count()).select_from(ExecutionRecord)
        if area_id is not None:
            query = query.where(ExecutionRecord.area_id == area_id)
        if status is not None:
            query = query.where(ExecutionRecord.status == status)

        result = await self.session.execute(query)
        return result.scalar_one()

    async def average_execution_time_ms(self, area_id: uuid.UUID | None = None) -> float | None:
        """Mean duration over records that have one; ``None`` when none do."""
        query = select(func.avg(ExecutionRecord.execution_time_ms)).where(
            ExecutionRecord.execution_time_ms.is_not(None)
        )
        if area_id is not None:
            query = query.where(ExecutionRecord.area_id == area_id)

        result = await self.session.execute(query)
        avg = result.scalar_one_or_none()
        return float(avg) if avg is not None else None

    async def get_execution_stats(self, area_id: uuid.UUID | None = None) -> ExecutionStats:
        """Get execution statistics, optionally scoped to one area.

        Args:
            area_id: Restrict every count and the average to this area.

        Returns:
            ExecutionStats with one count per status; ``completed`` counts
            SUCCESS records.
        """
        status_counts = {}
        for status in ExecutionStatus:
            status_counts[status] = await self.count(area_id, status)

        return ExecutionStats(
            total=await self.count(area_id),
            pending=status_counts[ExecutionStatus.PENDING],
            running=status_counts[ExecutionStatus.RUNNING],
            completed=status_counts[ExecutionStatus.SUCCESS],
            failed=status_counts[ExecutionStatus.FAILED],
            cancelled=status_counts[ExecutionStatus.CANCELLED],
            skipped=status_counts[ExecutionStatus.SKIPPED],
            avg_execution_time_ms=await self.average_execution_time_ms(area_id),
        )


__all__ = ["ExecutionStatsAggregator"]
