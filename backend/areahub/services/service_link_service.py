"""Service link coordinator.

Links, unlinks and refreshes OAuth2 credentials for (user, service) pairs.
Every mutation is one read-modify-write: it runs under an in-process lock
for the pair, reads the row ``FOR UPDATE`` and commits before the lock is
released.

Read methods return ``ServiceAccountLinkResponse`` objects, which carry no
token fields.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from areahub.core.config import settings as default_settings
from areahub.core.exceptions import ConflictError, NotFoundError, ProviderError
from areahub.core.logging import get_logger
from areahub.models.enums import LinkPlatform
from areahub.models.service import Service
from areahub.models.user import User
from areahub.schemas.service_link import ServiceAccountLinkResponse
from areahub.services.token_store import TokenStore

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from areahub.core.config import Settings
    from areahub.models.service_link import ServiceAccountLink
    from areahub.schemas.service_link import OAuth2AccountCreate
    from areahub.services.oauth2.base import OAuth2ProviderClient
    from areahub.services.oauth2.registry import OAuth2ClientRegistry


class KeyedLock:
    """Async mutex per key.

    Locks are created on first use and dropped once no task holds or waits
    for them.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every coordinator in the process
link_locks = KeyedLock()


class ServiceLinkCoordinator:
    """Orchestrates link/unlink/refresh over the provider clients and TokenStore.

    Logging:
        - Logs link, unlink and refresh outcomes with user/service ids only
        - Logs profile lookups that fail after a successful exchange
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: OAuth2ClientRegistry,
        settings: Settings | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            session: Async SQLAlchemy session
            registry: Provider clients
            settings: Source of the redirect URIs (defaults to global settings)
            locks: Per-pair lock table (defaults to the process-wide table)
        """
        self.session = session
        self.store = TokenStore(session)
        self.registry = registry
        self.settings = settings or default_settings
        self.locks = locks if locks is not None else link_locks
        self.logger = get_logger(__name__)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def link(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
        code: str | None = None,
        platform: LinkPlatform = LinkPlatform.WEB,
        code_verifier: str | None = None,
    ) -> ServiceAccountLinkResponse:
        """Link a service for a user, or confirm an existing link.

        Without ``code`` an existing link is returned untouched; with no
        link this is a Conflict. With ``code`` the code is exchanged and the
        tokens are stored, creating the link or overwriting its token fields.

        Raises:
            NotFoundError: If the service does not exist.
            ConflictError: If the service does not require authentication,
                or no code was given and no link exists.
            ProviderError: If the service has no provider or the exchange
                fails.
        """
        service = await self._get_service(service_id)
        if not service.requires_auth:
            raise ConflictError(
                "Cannot create OAuth2 account for a service that does not require authentication"
            )

        async with self.locks.hold((user_id, service_id)):
            existing = await self.store.get(user_id, service_id)

            if code is None:
                if existing is None:
                    raise ConflictError("Authorization code required to link this service")
                return self._to_response(existing)

            client = self._client_for(service)
            redirect_uri = self._redirect_uri(platform)
            tokens = await client.exchange_code(code, redirect_uri, code_verifier)

            link = await self.store.upsert_tokens(user_id, service_id, tokens)
            await self._attach_identity(client, link, tokens.access_token)
            await self.session.commit()

            self.logger.info(
                "Service account linked",
                extra={
                    "context": {
                        "user_id": str(user_id),
                        "service_id": str(service_id),
                        "provider": client.provider.value,
                        "platform": platform.value,
                        "relink": existing is not None,
                        "action": "link_service",
                    }
                },
            )
            return await self._read(user_id, service_id)

    async def unlink(self, user_id: uuid.UUID, service_id: uuid.UUID) -> None:
        """Delete the link for (user_id, service_id).

        Raises:
            NotFoundError: If no link exists.
        """
        async with self.locks.hold((user_id, service_id)):
            link = await self.store.get_for_update(user_id, service_id)
            if link is None:
                raise NotFoundError("Service account link not found")

            await self.store.delete(link)
            await self.session.commit()

        self.logger.info(
            "Service account unlinked",
            extra={
                "context": {
                    "user_id": str(user_id),
                    "service_id": str(service_id),
                    "action": "unlink_service",
                }
            },
        )

    async def refresh(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> ServiceAccountLinkResponse:
        """Refresh the access token of an existing link.

        A refresh token omitted by the provider keeps the stored one.

        Raises:
            NotFoundError: If no link exists, or the link has no refresh token.
            ProviderError: If the provider rejects the refresh.
        """
        async with self.locks.hold((user_id, service_id)):
            link = await self.store.get_for_update(user_id, service_id)
            if link is None:
                raise NotFoundError("Service account link not found")
            if not link.refresh_token:
                raise NotFoundError("No refresh token stored for this service account link")

            client = self._client_for(link.service)
            tokens = await client.refresh_token(link.refresh_token)

            await self.store.upsert_tokens(
                user_id,
                service_id,
                tokens,
                keep_refresh_token=True,
            )
            await self.session.commit()

            self.logger.info(
                "Service account token refreshed",
                extra={
                    "context": {
                        "user_id": str(user_id),
                        "service_id": str(service_id),
                        "provider": client.provider.value,
                        "rotated": tokens.refresh_token is not None,
                        "action": "refresh_service_token",
                    }
                },
            )
            return await self._read(user_id, service_id)

    async def create_account(self, data: OAuth2AccountCreate) -> ServiceAccountLinkResponse:
        """Register a provider account for a user without exchanging a code.

        Raises:
            NotFoundError: If the user or the service does not exist.
            ConflictError: If the service does not require authentication or
                the pair is already linked.
        """
        user = await self.session.get(User, data.user_id)
        if user is None:
            raise NotFoundError("User not found")
        service = await self._get_service(data.service_id)
        if not service.requires_auth:
            raise ConflictError(
                "Cannot create OAuth2 account for a service that does not require authentication"
            )

        async with self.locks.hold((data.user_id, data.service_id)):
            if await self.store.get(data.user_id, data.service_id) is not None:
                raise ConflictError("OAuth2 account already linked for this service")

            await self.store.create(
                data.user_id,
                data.service_id,
                service_account_id=data.oauth2_provider_user_id,
                email=data.email,
            )
            await self.session.commit()
            return await self._read(data.user_id, data.service_id)

    async def update_email(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
        email: str | None,
    ) -> ServiceAccountLinkResponse:
        """Replace the display email of a link.

        Raises:
            NotFoundError: If no link exists.
        """
        async with self.locks.hold((user_id, service_id)):
            link = await self.store.get_for_update(user_id, service_id)
            if link is None:
                raise NotFoundError("Service account link not found")

            link.email = email
            await self.session.flush()
            await self.session.commit()
            return await self._read(user_id, service_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_one(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> ServiceAccountLinkResponse | None:
        """Get the token-free view of a link, or ``None``."""
        link = await self.store.get(user_id, service_id)
        return self._to_response(link) if link is not None else None

    async def find_by_user(self, user_id: uuid.UUID) -> list[ServiceAccountLinkResponse]:
        """List the token-free views of a user's links."""
        links = await self.store.list_for_user(user_id)
        return [self._to_response(link) for link in links]

    async def find_by_service_account_id(
        self,
        service_id: uuid.UUID,
        service_account_id: str,
    ) -> ServiceAccountLinkResponse | None:
        """Find the link holding a given provider account, or ``None``."""
        link = await self.store.get_by_service_account_id(service_id, service_account_id)
        return self._to_response(link) if link is not None else None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_service(self, service_id: uuid.UUID) -> Service:
        service = await self.session.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        return service

    def _client_for(self, service: Service) -> OAuth2ProviderClient:
        client = self.registry.for_service_name(service.name)
        if client is None:
            raise ProviderError(f"No OAuth2 provider available for service {service.name}")
        return client

    def _redirect_uri(self, platform: LinkPlatform) -> str:
        if platform is LinkPlatform.MOBILE:
            return self.settings.OAUTH2_MOBILE_REDIRECT_URI
        return self.settings.OAUTH2_WEB_REDIRECT_URI

    async def _attach_identity(
        self,
        client: OAuth2ProviderClient,
        link: ServiceAccountLink,
        access_token: str,
    ) -> None:
        """Fill the provider account id and email; failures leave the link as is."""
        try:
            info = await client.get_user_info(access_token)
        except ProviderError as e:
            self.logger.warning(
                "Provider profile lookup failed after link",
                extra={
                    "context": {
                        "user_id": str(link.user_id),
                        "service_id": str(link.service_id),
                        "provider": client.provider.value,
                        "error": e.message,
                    }
                },
            )
            return
        await self.store.update_identity(link, service_account_id=info.id, email=info.email)

    async def _read(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> ServiceAccountLinkResponse:
        link = await self.store.get(user_id, service_id)
        if link is None:
            raise NotFoundError("Service account link not found")
        return self._to_response(link)

    @staticmethod
    def _to_response(link: ServiceAccountLink) -> ServiceAccountLinkResponse:
        return ServiceAccountLinkResponse.model_validate(link)


__all__ = [
    "KeyedLock",
    "ServiceLinkCoordinator",
    "link_locks",
]
