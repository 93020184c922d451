"""Area trigger-counter notification.

Creating an execution record bumps the owning Area's trigger counter. The
bump is fire-and-forget: it runs as a separate asyncio task, its failure is
logged and never affects the record that caused it.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import update

from areahub.core.logging import get_logger
from areahub.models.area import Area

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

# Strong references keep running tasks from being garbage collected
_pending: set[asyncio.Task[None]] = set()


class AreaTriggerNotifier(Protocol):
    """Receives one call per created execution record."""

    async def notify_triggered(self, area_id: uuid.UUID, triggered_at: datetime) -> None: ...


class SqlAreaTriggerNotifier:
    """Increments ``areas.triggered_count`` in its own session.

    The update is a single atomic ``SET triggered_count = triggered_count + 1``
    so concurrent notifications never lose an increment.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def notify_triggered(self, area_id: uuid.UUID, triggered_at: datetime) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Area)
                .where(Area.id == area_id)
                .values(
                    triggered_count=Area.triggered_count + 1,
                    last_triggered_at=triggered_at,
                )
            )
            await session.commit()

        if not result.rowcount:
            logger.warning(
                "Trigger count not incremented: area not found",
                extra={"context": {"area_id": str(area_id)}},
            )


async def _notify(
    notifier: AreaTriggerNotifier,
    area_id: uuid.UUID,
    triggered_at: datetime,
) -> None:
    try:
        await notifier.notify_triggered(area_id, triggered_at)
    except Exception:
        logger.warning(
            "Area trigger notification failed",
            exc_info=True,
            extra={"context": {"area_id": str(area_id)}},
        )


def dispatch_notification(
    notifier: AreaTriggerNotifier,
    area_id: uuid.UUID,
    triggered_at: datetime,
) -> asyncio.Task[None]:
    """Schedule ``notifier`` without waiting for it.

    Must be called from a running event loop.
    """
    task = asyncio.create_task(_notify(notifier, area_id, triggered_at))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


def pending_notifications() -> int:
    """Number of notifications still running."""
    return len(_pending)


async def drain_notifications(timeout: float | None = None) -> None:
    """Wait for outstanding notifications (shutdown and tests)."""
    tasks = {task for task in _pending if not task.done()}
    if tasks:
        await asyncio.wait(tasks, timeout=timeout)


__all__ = [
    "AreaTriggerNotifier",
    "SqlAreaTriggerNotifier",
    "dispatch_notification",
    "drain_notifications",
    "pending_notifications",
]
