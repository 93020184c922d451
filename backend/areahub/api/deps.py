"""API dependencies.

Common dependencies for API routes: database sessions, the authenticated
user and the service objects the routers call into.
"""

from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from areahub.core.clock import Clock, utc_now
from areahub.core.config import settings
from areahub.core.jwt import verify_token
from areahub.db.session import async_session, get_db
from areahub.models.user import User
from areahub.services.execution_service import ExecutionLifecycleManager
from areahub.services.execution_stats import ExecutionStatsAggregator
from areahub.services.notifier import AreaTriggerNotifier, SqlAreaTriggerNotifier
from areahub.services.oauth2.registry import OAuth2ClientRegistry
from areahub.services.service_link_service import ServiceLinkCoordinator

# =============================================================================
# Database Session Dependency
# =============================================================================

DBSession = Annotated[AsyncSession, Depends(get_db)]
"""Type alias for database session dependency injection.

Usage:
    @router.get("/items")
    async def get_items(db: DBSession):
        result = await db.execute(select(Item))
        return result.scalars().all()
"""


# =============================================================================
# Authentication Dependencies
# =============================================================================


def _credentials_error(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    db: DBSession,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Get current authenticated user (required).

    Args:
        db: Database session for querying user.
        authorization: Authorization header value (format: "Bearer <token>").

    Raises:
        HTTPException: 401 if not authenticated or user not found.

    Returns:
        User object.
    """
    if authorization is None:
        raise _credentials_error("Not authenticated")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _credentials_error()

    user_id = verify_token(token)
    if user_id is None:
        raise _credentials_error()

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise _credentials_error() from None

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()
    if user is None:
        raise _credentials_error("User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
"""Type alias for required current user dependency.

Usage:
    @router.post("/items")
    async def create_item(current_user: CurrentUser, item: ItemCreate):
        return await service.create_item(item, owner=current_user)
"""


# =============================================================================
# Service Dependencies
# =============================================================================


@lru_cache
def get_oauth2_registry() -> OAuth2ClientRegistry:
    """Process-wide provider client registry, built from settings once."""
    return OAuth2ClientRegistry.from_settings(settings)


def get_trigger_notifier() -> AreaTriggerNotifier:
    """Notifier that bumps area trigger counters in its own session."""
    return SqlAreaTriggerNotifier(async_session)


def get_clock() -> Clock:
    """Source of "now" for the services."""
    return utc_now


Registry = Annotated[OAuth2ClientRegistry, Depends(get_oauth2_registry)]
Notifier = Annotated[AreaTriggerNotifier, Depends(get_trigger_notifier)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_link_coordinator(db: DBSession, registry: Registry) -> ServiceLinkCoordinator:
    """Coordinator bound to the request session."""
    return ServiceLinkCoordinator(db, registry)


def get_execution_manager(
    db: DBSession,
    notifier: Notifier,
    clock: ClockDep,
) -> ExecutionLifecycleManager:
    """Execution lifecycle manager bound to the request session."""
    return ExecutionLifecycleManager(db, notifier=notifier, clock=clock)


def get_stats_aggregator(db: DBSession) -> ExecutionStatsAggregator:
    """Statistics aggregator bound to the request session."""
    return ExecutionStatsAggregator(db)


LinkCoordinator = Annotated[ServiceLinkCoordinator, Depends(get_link_coordinator)]
ExecutionManager = Annotated[ExecutionLifecycleManager, Depends(get_execution_manager)]
StatsAggregator = Annotated[ExecutionStatsAggregator, Depends(get_stats_aggregator)]


__all__ = [
    "ClockDep",
    "CurrentUser",
    "DBSession",
    "ExecutionManager",
    "LinkCoordinator",
    "Notifier",
    "Registry",
    "StatsAggregator",
    "get_clock",
    "get_current_user",
    "get_db",
    "get_execution_manager",
    "get_link_coordinator",
    "get_oauth2_registry",
    "get_stats_aggregator",
    "get_trigger_notifier",
]
