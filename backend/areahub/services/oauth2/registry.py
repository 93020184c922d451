"""Registry of OAuth2 provider clients.

Settings are read once here and turned into one ``OAuth2ProviderConfig``
per provider; clients never read global configuration themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from areahub.core.clock import Clock, utc_now
from areahub.core.logging import get_logger
from areahub.models.enums import OAuthProvider, provider_for_service_name
from areahub.services.oauth2.base import OAuth2ProviderClient, OAuth2ProviderConfig
from areahub.services.oauth2.providers import PROVIDER_CLIENTS

if TYPE_CHECKING:
    from areahub.core.config import Settings

logger = get_logger(__name__)


def provider_config_from_settings(
    provider: OAuthProvider,
    settings: Settings,
) -> OAuth2ProviderConfig:
    """Build the explicit configuration for ``provider`` from settings."""
    client_id, client_secret = settings.oauth2_credentials(provider.value)
    return OAuth2ProviderConfig(
        provider=provider,
        client_id=client_id,
        client_secret=client_secret,
        timeout_seconds=settings.OAUTH2_HTTP_TIMEOUT_SECONDS,
        user_agent=settings.REDDIT_USER_AGENT if provider is OAuthProvider.REDDIT else None,
    )


class OAuth2ClientRegistry:
    """Lookup of provider clients by provider or catalog service name."""

    def __init__(self, clients: Iterable[OAuth2ProviderClient] = ()) -> None:
        self._clients: dict[OAuthProvider, OAuth2ProviderClient] = {}
        for client in clients:
            self.register(client)

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> OAuth2ClientRegistry:
        """Create one client per known provider.

        Providers without credentials are still registered, in the
        unconfigured state.
        """
        registry = cls()
        for provider, client_cls in PROVIDER_CLIENTS.items():
            client = client_cls(provider_config_from_settings(provider, settings), clock=clock)
            registry.register(client)

        logger.info(
            "OAuth2 clients registered",
            extra={
                "context": {
                    "configured": sorted(
                        client.provider.value for client in registry if client.is_configured
                    )
                }
            },
        )
        return registry

    def register(self, client: OAuth2ProviderClient) -> None:
        """Register ``client``, replacing any client for the same provider."""
        self._clients[client.provider] = client

    def get(self, provider: OAuthProvider | str) -> OAuth2ProviderClient | None:
        """Return the client for ``provider``, or ``None``."""
        try:
            key = OAuthProvider(provider)
        except ValueError:
            return None
        return self._clients.get(key)

    def for_service_name(self, name: str) -> OAuth2ProviderClient | None:
        """Return the client for a catalog service name, or ``None``."""
        provider = provider_for_service_name(name)
        if provider is None:
            return None
        return self._clients.get(provider)

    def __iter__(self) -> Iterator[OAuth2ProviderClient]:
        return iter(self._clients.values())

    def __len__(self) -> int:
        return len(self._clients)

    async def aclose(self) -> None:
        """Close every client's HTTP connection pool."""
        for client in self._clients.values():
            await client.aclose()


__all__ = [
    "OAuth2ClientRegistry",
    "provider_config_from_settings",
]
