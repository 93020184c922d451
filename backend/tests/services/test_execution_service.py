"""Tests for ExecutionLifecycleManager."""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import select

from areahub.core.exceptions import ErrorKind, NotFoundError
from areahub.models import Area, ExecutionRecord, ExecutionStatus
from areahub.schemas.execution import ExecutionRecordCreate, ExecutionRecordUpdate
from areahub.services.execution_service import ExecutionLifecycleManager
from areahub.services.notifier import SqlAreaTriggerNotifier, drain_notifications

START_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def manager(db_session, notifier, clock):
    """Manager with a recording notifier and a frozen clock."""
    return ExecutionLifecycleManager(db_session, notifier=notifier, clock=clock)


async def _create(manager, area, **kwargs):
    return await manager.create(ExecutionRecordCreate(area_id=area.id, **kwargs))


# =============================================================================
# create
# =============================================================================


class TestCreate:
    """Record creation and the trigger notification."""

    @pytest.mark.asyncio
    async def test_defaults(self, manager, area):
        """Status defaults to PENDING and started_at to now."""
        record = await _create(manager, area, trigger_data={"issue": 42})

        assert record.id is not None
        assert record.status == ExecutionStatus.PENDING
        assert record.started_at == START_TIME
        assert record.completed_at is None
        assert record.execution_time_ms is None
        assert record.trigger_data == {"issue": 42}

    @pytest.mark.asyncio
    async def test_explicit_status_and_start_are_kept(self, manager, area):
        started = START_TIME - timedelta(hours=3)

        record = await _create(
            manager,
            area,
            status=ExecutionStatus.RUNNING,
            started_at=started,
        )

        assert record.status == ExecutionStatus.RUNNING
        assert record.started_at == started

    @pytest.mark.asyncio
    async def test_naive_start_is_treated_as_utc(self, manager, area):
        record = await _create(manager, area, started_at=datetime(2024, 1, 1, 8, 0, 0))

        assert record.started_at == START_TIME - timedelta(hours=4)

    @pytest.mark.asyncio
    async def test_replayed_terminal_record_gets_duration(self, manager, area):
        record = await _create(
            manager,
            area,
            status=ExecutionStatus.SUCCESS,
            started_at=START_TIME - timedelta(seconds=90),
            completed_at=START_TIME,
        )

        assert record.execution_time_ms == 90000

    @pytest.mark.asyncio
    async def test_notifies_area_once(self, manager, area, notifier):
        await _create(manager, area)
        await drain_notifications()

        assert notifier.calls == [(area.id, START_TIME)]

    @pytest.mark.asyncio
    async def test_notification_failure_is_logged_not_raised(self, manager, area, notifier, caplog):
        notifier.error = RuntimeError("counter service down")

        with caplog.at_level(logging.WARNING, logger="areahub.services.notifier"):
            record = await _create(manager, area)
            await drain_notifications()

        assert len(notifier.calls) == 1
        assert (await manager.find_one(record.id)).id == record.id
        assert "Area trigger notification failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_area(self, manager):
        with pytest.raises(NotFoundError):
            await manager.create(ExecutionRecordCreate(area_id=uuid4()))

    @pytest.mark.asyncio
    async def test_without_notifier(self, db_session, area, clock):
        manager = ExecutionLifecycleManager(db_session, clock=clock)

        record = await _create(manager, area)

        assert record.status == ExecutionStatus.PENDING


# =============================================================================
# Named transitions
# =============================================================================


class TestTransitions:
    """start/complete/fail/cancel/skip."""

    @pytest.mark.asyncio
    async def test_start_keeps_started_at(self, manager, area, clock):
        record = await _create(manager, area)
        clock.advance(minutes=5)

        started = await manager.start_execution(record.id)

        assert started.status == ExecutionStatus.RUNNING
        assert started.started_at == START_TIME

    @pytest.mark.asyncio
    async def test_complete(self, manager, area, clock):
        record = await _create(manager, area)
        await manager.start_execution(record.id)
        clock.advance(minutes=1, seconds=30)

        done = await manager.complete_execution(record.id, {"message_id": "1"})

        assert done.status == ExecutionStatus.SUCCESS
        assert done.execution_result == {"message_id": "1"}
        assert done.completed_at == START_TIME + timedelta(seconds=90)
        assert done.execution_time_ms == 90000

    @pytest.mark.asyncio
    async def test_fail(self, manager, area, clock):
        record = await _create(manager, area)
        clock.advance(seconds=3)

        failed = await manager.fail_execution(record.id, "webhook returned 404")

        assert failed.status == ExecutionStatus.FAILED
        assert failed.error_message == "webhook returned 404"
        assert failed.execution_time_ms == 3000

    @pytest.mark.asyncio
    async def test_cancel(self, manager, area, clock):
        record = await _create(manager, area)
        clock.advance(milliseconds=250)

        cancelled = await manager.cancel_execution(record.id)

        assert cancelled.status == ExecutionStatus.CANCELLED
        assert cancelled.execution_time_ms == 250

    @pytest.mark.asyncio
    async def test_skip_from_pending(self, manager, area):
        record = await _create(manager, area)

        skipped = await manager.skip_execution(record.id)

        assert skipped.status == ExecutionStatus.SKIPPED
        assert skipped.completed_at == START_TIME
        assert skipped.execution_time_ms == 0

    @pytest.mark.asyncio
    async def test_complete_without_start_time(self, manager, area, db_session):
        record = await _create(manager, area)
        record.started_at = None
        await db_session.flush()

        done = await manager.complete_execution(record.id)

        assert done.status == ExecutionStatus.SUCCESS
        assert done.completed_at == START_TIME
        assert done.execution_time_ms is None

    @pytest.mark.asyncio
    async def test_out_of_order_moves_are_allowed(self, manager, area, clock):
        record = await _create(manager, area)
        await manager.cancel_execution(record.id)
        clock.advance(seconds=1)

        done = await manager.complete_execution(record.id)

        assert done.status == ExecutionStatus.SUCCESS
        assert done.execution_time_ms == 1000

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda m, i: m.start_execution(i),
            lambda m, i: m.complete_execution(i),
            lambda m, i: m.fail_execution(i, "boom"),
            lambda m, i: m.cancel_execution(i),
            lambda m, i: m.skip_execution(i),
            lambda m, i: m.update(i, ExecutionRecordUpdate()),
            lambda m, i: m.find_one(i),
            lambda m, i: m.remove(i),
        ],
    )
    async def test_unknown_id(self, manager, call):
        with pytest.raises(NotFoundError) as exc_info:
            await call(manager, uuid4())
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


# =============================================================================
# update
# =============================================================================


class TestUpdate:
    """Generic partial update."""

    @pytest.mark.asyncio
    async def test_terminal_status_stamps_completion_and_duration(self, manager, area, clock):
        record = await _create(manager, area)
        clock.advance(seconds=90)

        updated = await manager.update(
            record.id, ExecutionRecordUpdate(status=ExecutionStatus.SUCCESS)
        )

        assert updated.completed_at == START_TIME + timedelta(seconds=90)
        assert updated.execution_time_ms == 90000

    @pytest.mark.asyncio
    async def test_explicit_timestamps_recompute_duration(self, manager, area):
        record = await _create(manager, area)

        updated = await manager.update(
            record.id,
            ExecutionRecordUpdate(
                status=ExecutionStatus.FAILED,
                started_at=START_TIME,
                completed_at=START_TIME + timedelta(minutes=1, seconds=30),
            ),
        )

        assert updated.execution_time_ms == 90000

    @pytest.mark.asyncio
    async def test_agrees_with_named_helper(self, manager, area, clock):
        first = await _create(manager, area)
        second = await _create(manager, area)
        clock.advance(seconds=12)

        via_helper = await manager.complete_execution(first.id)
        via_update = await manager.update(
            second.id, ExecutionRecordUpdate(status=ExecutionStatus.SUCCESS)
        )

        assert via_helper.execution_time_ms == via_update.execution_time_ms == 12000

    @pytest.mark.asyncio
    async def test_null_completed_at_is_ignored(self, manager, area):
        record = await _create(manager, area)
        await manager.cancel_execution(record.id)

        updated = await manager.update(record.id, ExecutionRecordUpdate(completed_at=None))

        assert updated.completed_at == START_TIME

    @pytest.mark.asyncio
    async def test_only_supplied_fields_change(self, manager, area):
        record = await _create(manager, area, trigger_data={"a": 1})

        updated = await manager.update(record.id, ExecutionRecordUpdate(error_message="note"))

        assert updated.error_message == "note"
        assert updated.trigger_data == {"a": 1}
        assert updated.status == ExecutionStatus.PENDING

    @pytest.mark.asyncio
    async def test_non_terminal_status_leaves_completion_alone(self, manager, area):
        record = await _create(manager, area)

        updated = await manager.update(
            record.id, ExecutionRecordUpdate(status=ExecutionStatus.RUNNING)
        )

        assert updated.completed_at is None
        assert updated.execution_time_ms is None

    @pytest.mark.asyncio
    async def test_clearing_started_at_drops_duration(self, manager, area, clock):
        record = await _create(manager, area)
        clock.advance(seconds=90)
        await manager.complete_execution(record.id)

        updated = await manager.update(record.id, ExecutionRecordUpdate(started_at=None))

        assert updated.started_at is None
        assert updated.completed_at == START_TIME + timedelta(seconds=90)
        assert updated.execution_time_ms is None

    @pytest.mark.asyncio
    async def test_duration_cannot_be_set_directly(self, manager, area):
        """A supplied duration is ignored; it is always derived."""
        record = await _create(manager, area)

        updated = await manager.update(
            record.id, ExecutionRecordUpdate.model_validate({"execution_time_ms": 5})
        )

        assert updated.completed_at is None
        assert updated.execution_time_ms is None


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    """Read queries."""

    @pytest.mark.asyncio
    async def test_find_by_area_and_status(self, manager, area, other_area):
        a1 = await _create(manager, area)
        await _create(manager, other_area)
        await manager.start_execution(a1.id)

        by_area = await manager.find_by_area_id(area.id)
        running = await manager.find_by_status(ExecutionStatus.RUNNING)

        assert [r.id for r in by_area] == [a1.id]
        assert [r.id for r in running] == [a1.id]

    @pytest.mark.asyncio
    async def test_recent_is_newest_first_and_limited(self, manager, area, clock):
        ids = []
        for _ in range(4):
            ids.append((await _create(manager, area)).id)
            clock.advance(seconds=1)

        recent = await manager.find_recent_executions(limit=3)

        assert [r.id for r in recent] == list(reversed(ids))[:3]

    @pytest.mark.asyncio
    async def test_same_creation_time_orders_by_id(self, manager, area):
        """The frozen clock gives every record the same created_at."""
        ids = [(await _create(manager, area)).id for _ in range(5)]

        first = await manager.find_by_area_id(area.id)
        second = await manager.find_by_area_id(area.id)

        assert [r.id for r in first] == sorted(ids, reverse=True)
        assert [r.id for r in second] == [r.id for r in first]

    @pytest.mark.asyncio
    async def test_long_running(self, manager, area, clock):
        """Only RUNNING records started before now - threshold are returned."""
        old_running = await _create(
            manager, area, status=ExecutionStatus.RUNNING, started_at=START_TIME - timedelta(hours=2)
        )
        await _create(
            manager, area, status=ExecutionStatus.RUNNING, started_at=START_TIME - timedelta(minutes=10)
        )
        await _create(
            manager, area, status=ExecutionStatus.PENDING, started_at=START_TIME - timedelta(hours=3)
        )
        old_done = await _create(
            manager, area, status=ExecutionStatus.RUNNING, started_at=START_TIME - timedelta(hours=5)
        )
        await manager.fail_execution(old_done.id, "x")

        long_running = await manager.find_long_running_executions(60)

        assert [r.id for r in long_running] == [old_running.id]

    @pytest.mark.asyncio
    async def test_failed_with_and_without_area(self, manager, area, other_area):
        f1 = await _create(manager, area)
        f2 = await _create(manager, other_area)
        await _create(manager, area)
        await manager.fail_execution(f1.id, "a")
        await manager.fail_execution(f2.id, "b")

        assert {r.id for r in await manager.find_failed_executions()} == {f1.id, f2.id}
        assert [r.id for r in await manager.find_failed_executions(area.id)] == [f1.id]

    @pytest.mark.asyncio
    async def test_find_all(self, manager, area, other_area):
        await _create(manager, area)
        await _create(manager, other_area)

        assert len(await manager.find_all()) == 2


# =============================================================================
# Deletion
# =============================================================================


class TestDeletion:
    """remove, remove_by_area_id and cleanup."""

    @pytest.mark.asyncio
    async def test_cleanup_deletes_only_old_terminal_records(self, manager, area, clock, db_session):
        old_success = await _create(manager, area, started_at=START_TIME - timedelta(days=40))
        old_skipped = await _create(manager, area)
        old_running = await _create(manager, area, status=ExecutionStatus.RUNNING)
        recent_failed = await _create(manager, area)
        await manager.complete_execution(old_success.id)
        await manager.skip_execution(old_skipped.id)

        clock.advance(days=29)
        await manager.fail_execution(recent_failed.id, "x")

        clock.advance(days=2)
        deleted = await manager.cleanup(30)

        remaining = set((await db_session.execute(select(ExecutionRecord.id))).scalars())
        assert deleted == 2
        assert remaining == {old_running.id, recent_failed.id}

    @pytest.mark.asyncio
    async def test_cleanup_with_nothing_to_delete(self, manager, area):
        await _create(manager, area)

        assert await manager.cleanup(30) == 0

    @pytest.mark.asyncio
    async def test_cleanup_normalises_missing_rowcount(self, clock):
        session = MagicMock()
        session.execute = AsyncMock(return_value=MagicMock(rowcount=None))
        manager = ExecutionLifecycleManager(session, clock=clock)

        assert await manager.cleanup(30) == 0

        session.execute.return_value = MagicMock(rowcount=-1)
        assert await manager.cleanup(30) == 0

    @pytest.mark.asyncio
    async def test_remove(self, manager, area, db_session):
        record = await _create(manager, area)

        await manager.remove(record.id)

        assert await db_session.get(ExecutionRecord, record.id) is None

    @pytest.mark.asyncio
    async def test_remove_by_area_id(self, manager, area, other_area):
        await _create(manager, area)
        await _create(manager, area)
        await _create(manager, other_area)

        assert await manager.remove_by_area_id(area.id) == 2
        assert await manager.find_by_area_id(area.id) == []
        assert len(await manager.find_by_area_id(other_area.id)) == 1


# =============================================================================
# SqlAreaTriggerNotifier
# =============================================================================


class TestSqlAreaTriggerNotifier:
    """Atomic trigger counter update."""

    @pytest.mark.asyncio
    async def test_increments_counter(self, async_session_maker, db_session, area):
        await db_session.commit()
        notifier = SqlAreaTriggerNotifier(async_session_maker)

        await notifier.notify_triggered(area.id, START_TIME)
        await notifier.notify_triggered(area.id, START_TIME + timedelta(minutes=1))

        async with async_session_maker() as session:
            loaded = await session.get(Area, area.id)
        assert loaded.triggered_count == 2
        assert loaded.last_triggered_at == START_TIME + timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_unknown_area_is_logged(self, async_session_maker, caplog):
        notifier = SqlAreaTriggerNotifier(async_session_maker)

        with caplog.at_level(logging.WARNING, logger="areahub.services.notifier"):
            await notifier.notify_triggered(uuid4(), START_TIME)

        assert "area not found" in caplog.text
