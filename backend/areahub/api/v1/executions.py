"""Execution API Router.

Endpoints for AREA execution records: creation by the scheduler, lifecycle
transitions, queries, statistics and cleanup.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from areahub.api.deps import (  # noqa: TC001 - Required at runtime for FastAPI
    ExecutionManager,
    StatsAggregator,
)
from areahub.core.config import settings
from areahub.models.enums import ExecutionStatus  # noqa: TC001 - Required at runtime for FastAPI
from areahub.schemas.base import ErrorResponse
from areahub.schemas.execution import (
    CleanupResult,
    ExecutionComplete,
    ExecutionFail,
    ExecutionRecordCreate,
    ExecutionRecordResponse,
    ExecutionRecordUpdate,
    ExecutionStats,
)

router = APIRouter()


# =============================================================================
# Path Parameter Dependencies
# =============================================================================


ExecutionIdPath = Annotated[
    UUID,
    Path(
        ...,
        description="Unique identifier of the execution record",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    ),
]

AreaIdPath = Annotated[
    UUID,
    Path(
        ...,
        description="Unique identifier of the AREA",
        examples=["770e8400-e29b-41d4-a716-446655440000"],
    ),
]

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Execution record not found"}}


def _to_response(records: list) -> list[ExecutionRecordResponse]:
    return [ExecutionRecordResponse.model_validate(record) for record in records]


# =============================================================================
# Collection Endpoints
# =============================================================================


@router.post(
    "/",
    response_model=ExecutionRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create execution record",
    responses={404: {"model": ErrorResponse, "description": "AREA not found"}},
)
async def create_execution(
    data: ExecutionRecordCreate,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Record a fired trigger. Increments the AREA's trigger counter."""
    record = await manager.create(data)
    return ExecutionRecordResponse.model_validate(record)


@router.get(
    "/",
    response_model=list[ExecutionRecordResponse],
    summary="List execution records",
)
async def list_executions(manager: ExecutionManager) -> list[ExecutionRecordResponse]:
    """List every execution record, newest first."""
    return _to_response(await manager.find_all())


@router.get(
    "/recent",
    response_model=list[ExecutionRecordResponse],
    summary="List recent execution records",
)
async def list_recent_executions(
    manager: ExecutionManager,
    limit: Annotated[int, Query(ge=1, le=500)] = settings.EXECUTION_RECENT_LIMIT,
) -> list[ExecutionRecordResponse]:
    """List the most recently created records."""
    return _to_response(await manager.find_recent_executions(limit))


@router.get(
    "/long-running",
    response_model=list[ExecutionRecordResponse],
    summary="List long-running executions",
)
async def list_long_running_executions(
    manager: ExecutionManager,
    threshold_minutes: Annotated[
        int,
        Query(ge=0, description="Minimum running time in minutes"),
    ] = settings.EXECUTION_LONG_RUNNING_MINUTES,
) -> list[ExecutionRecordResponse]:
    """List RUNNING records older than the threshold."""
    return _to_response(await manager.find_long_running_executions(threshold_minutes))


@router.get(
    "/failed",
    response_model=list[ExecutionRecordResponse],
    summary="List failed executions",
)
async def list_failed_executions(
    manager: ExecutionManager,
    area_id: Annotated[UUID | None, Query(description="Filter by AREA ID")] = None,
) -> list[ExecutionRecordResponse]:
    """List FAILED records, optionally for one AREA."""
    return _to_response(await manager.find_failed_executions(area_id))


@router.get(
    "/stats",
    response_model=ExecutionStats,
    summary="Get execution statistics",
)
async def get_execution_stats(
    aggregator: StatsAggregator,
    area_id: Annotated[UUID | None, Query(description="Filter by AREA ID")] = None,
) -> ExecutionStats:
    """Counts per status and average duration, globally or for one AREA."""
    return await aggregator.get_execution_stats(area_id)


@router.post(
    "/cleanup",
    response_model=CleanupResult,
    summary="Delete old terminal executions",
)
async def cleanup_executions(
    manager: ExecutionManager,
    older_than_days: Annotated[int, Query(ge=0)] = settings.EXECUTION_CLEANUP_DAYS,
) -> CleanupResult:
    """Delete terminal records completed more than ``older_than_days`` ago."""
    deleted = await manager.cleanup(older_than_days)
    return CleanupResult(deleted=deleted, older_than_days=older_than_days)


@router.get(
    "/area/{area_id}",
    response_model=list[ExecutionRecordResponse],
    summary="List an AREA's executions",
)
async def list_area_executions(
    area_id: AreaIdPath,
    manager: ExecutionManager,
) -> list[ExecutionRecordResponse]:
    """List the execution records of one AREA."""
    return _to_response(await manager.find_by_area_id(area_id))


@router.delete(
    "/area/{area_id}",
    response_model=CleanupResult,
    summary="Delete an AREA's executions",
)
async def delete_area_executions(
    area_id: AreaIdPath,
    manager: ExecutionManager,
) -> CleanupResult:
    """Delete every execution record of one AREA."""
    deleted = await manager.remove_by_area_id(area_id)
    return CleanupResult(deleted=deleted)


@router.get(
    "/status/{execution_status}",
    response_model=list[ExecutionRecordResponse],
    summary="List executions by status",
)
async def list_executions_by_status(
    execution_status: ExecutionStatus,
    manager: ExecutionManager,
) -> list[ExecutionRecordResponse]:
    """List execution records in one status."""
    return _to_response(await manager.find_by_status(execution_status))


# =============================================================================
# Item Endpoints
# =============================================================================


@router.get(
    "/{execution_id}",
    response_model=ExecutionRecordResponse,
    summary="Get execution record",
    responses=_NOT_FOUND,
)
async def get_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Get one execution record."""
    return ExecutionRecordResponse.model_validate(await manager.find_one(execution_id))


@router.patch(
    "/{execution_id}",
    response_model=ExecutionRecordResponse,
    summary="Update execution record",
    responses=_NOT_FOUND,
)
async def update_execution(
    execution_id: ExecutionIdPath,
    data: ExecutionRecordUpdate,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Overwrite the supplied fields of an execution record."""
    return ExecutionRecordResponse.model_validate(await manager.update(execution_id, data))


@router.post(
    "/{execution_id}/start",
    response_model=ExecutionRecordResponse,
    summary="Start execution",
    responses=_NOT_FOUND,
)
async def start_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Mark an execution as RUNNING."""
    return ExecutionRecordResponse.model_validate(await manager.start_execution(execution_id))


@router.post(
    "/{execution_id}/complete",
    response_model=ExecutionRecordResponse,
    summary="Complete execution",
    responses=_NOT_FOUND,
)
async def complete_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
    body: ExecutionComplete | None = None,
) -> ExecutionRecordResponse:
    """Mark an execution as SUCCESS with an optional result."""
    result = body.execution_result if body is not None else None
    record = await manager.complete_execution(execution_id, result)
    return ExecutionRecordResponse.model_validate(record)


@router.post(
    "/{execution_id}/fail",
    response_model=ExecutionRecordResponse,
    summary="Fail execution",
    responses=_NOT_FOUND,
)
async def fail_execution(
    execution_id: ExecutionIdPath,
    body: ExecutionFail,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Mark an execution as FAILED."""
    record = await manager.fail_execution(execution_id, body.error_message)
    return ExecutionRecordResponse.model_validate(record)


@router.post(
    "/{execution_id}/cancel",
    response_model=ExecutionRecordResponse,
    summary="Cancel execution",
    responses=_NOT_FOUND,
)
async def cancel_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Mark an execution as CANCELLED."""
    return ExecutionRecordResponse.model_validate(await manager.cancel_execution(execution_id))


@router.post(
    "/{execution_id}/skip",
    response_model=ExecutionRecordResponse,
    summary="Skip execution",
    responses=_NOT_FOUND,
)
async def skip_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
) -> ExecutionRecordResponse:
    """Mark an execution as SKIPPED."""
    return ExecutionRecordResponse.model_validate(await manager.skip_execution(execution_id))


@router.delete(
    "/{execution_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete execution record",
    responses=_NOT_FOUND,
)
async def delete_execution(
    execution_id: ExecutionIdPath,
    manager: ExecutionManager,
) -> None:
    """Delete one execution record."""
    await manager.remove(execution_id)
