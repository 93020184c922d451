"""Domain enum definitions for AREA Hub.

This module defines the enum types used across the application for
type-safe representation of domain-specific values.
"""

from enum import Enum


class ExecutionStatus(str, Enum):
    """AREA execution state.

    PENDING is the initial state; SUCCESS, FAILED, CANCELLED and SKIPPED are
    terminal.
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        """True for states after which no further transition is expected."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        ExecutionStatus.SUCCESS,
        ExecutionStatus.FAILED,
        ExecutionStatus.CANCELLED,
        ExecutionStatus.SKIPPED,
    }
)


class OAuthProvider(str, Enum):
    """OAuth2 providers a service can be linked through."""

    DISCORD = "discord"
    GOOGLE = "google"
    GMAIL = "gmail"
    YOUTUBE = "youtube"
    GITHUB = "github"
    SPOTIFY = "spotify"
    TWITCH = "twitch"
    REDDIT = "reddit"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


def provider_for_service_name(name: str) -> OAuthProvider | None:
    """Map a catalog service name (e.g. "GitHub") to its provider."""
    try:
        return OAuthProvider(name.strip().lower())
    except ValueError:
        return None


class LinkPlatform(str, Enum):
    """Client platform that ran the authorization step.

    Selects which redirect URI is presented to the provider on exchange.
    """

    WEB = "web"
    MOBILE = "mobile"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = [
    "ExecutionStatus",
    "LinkPlatform",
    "OAuthProvider",
    "TERMINAL_STATUSES",
    "provider_for_service_name",
]
