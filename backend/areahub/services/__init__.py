"""Service layer for business logic."""

from areahub.services.execution_service import ExecutionLifecycleManager
from areahub.services.execution_stats import ExecutionStatsAggregator
from areahub.services.notifier import (
    AreaTriggerNotifier,
    SqlAreaTriggerNotifier,
    dispatch_notification,
    drain_notifications,
)
from areahub.services.service_link_service import KeyedLock, ServiceLinkCoordinator
from areahub.services.token_store import TokenStore

__all__ = [
    "AreaTriggerNotifier",
    "ExecutionLifecycleManager",
    "ExecutionStatsAggregator",
    "KeyedLock",
    "ServiceLinkCoordinator",
    "SqlAreaTriggerNotifier",
    "TokenStore",
    "dispatch_notification",
    "drain_notifications",
]
