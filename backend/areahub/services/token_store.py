"""Persistence for service account links.

One row per (user_id, service_id). Token writes go through
``upsert_tokens``, which runs inside a SAVEPOINT so either every token
field changes or none does.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from areahub.core.exceptions import ConflictError
from areahub.models.service_link import ServiceAccountLink

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from areahub.services.oauth2.base import TokenSet


class TokenStore:
    """Repository for ``ServiceAccountLink`` rows.

    The store flushes but never commits; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> ServiceAccountLink | None:
        """Get the link for (user_id, service_id), with user and service loaded."""
        result = await self.session.execute(
            select(ServiceAccountLink)
            .where(
                ServiceAccountLink.user_id == user_id,
                ServiceAccountLink.service_id == service_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_for_update(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> ServiceAccountLink | None:
        """Get the link and lock its row until the transaction ends.

        The lock is taken with ``FOR UPDATE OF service_account_links`` so the
        joined user/service rows stay unlocked. Backends without row locks
        (SQLite) ignore the clause.
        """
        result = await self.session.execute(
            select(ServiceAccountLink)
            .where(
                ServiceAccountLink.user_id == user_id,
                ServiceAccountLink.service_id == service_id,
            )
            .with_for_update(of=ServiceAccountLink)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID) -> list[ServiceAccountLink]:
        """List a user's links, oldest first."""
        result = await self.session.execute(
            select(ServiceAccountLink)
            .where(ServiceAccountLink.user_id == user_id)
            .order_by(ServiceAccountLink.created_at.asc())
        )
        return list(result.unique().scalars().all())

    async def get_by_service_account_id(
        self,
        service_id: uuid.UUID,
        service_account_id: str,
    ) -> ServiceAccountLink | None:
        """Find the link holding a given provider account for a service."""
        result = await self.session.execute(
            select(ServiceAccountLink)
            .where(
                ServiceAccountLink.service_id == service_id,
                ServiceAccountLink.service_account_id == service_account_id,
            )
            .order_by(ServiceAccountLink.created_at.asc())
            .limit(1)
        )
        return result.unique().scalar_one_or_none()

    async def create(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
        service_account_id: str | None = None,
        email: str | None = None,
    ) -> ServiceAccountLink:
        """Insert a link that carries identity only (no tokens yet).

        Raises:
            ConflictError: If a link for the pair already exists.
        """
        link = ServiceAccountLink(
            user_id=user_id,
            service_id=service_id,
            service_account_id=service_account_id,
            email=email,
        )
        await self._insert(link)
        return link

    async def upsert_tokens(
        self,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
        tokens: TokenSet,
        keep_refresh_token: bool = False,
    ) -> ServiceAccountLink:
        """Create the link or overwrite its token fields in place.

        Only ``access_token``, ``refresh_token`` and ``token_expires_at`` are
        written on an existing link. With ``keep_refresh_token`` a missing
        refresh token in ``tokens`` leaves the stored one unchanged.

        Raises:
            ConflictError: If a concurrent insert created the link first.
        """
        link = await self.get_for_update(user_id, service_id)
        if link is None:
            link = ServiceAccountLink(
                user_id=user_id,
                service_id=service_id,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                token_expires_at=tokens.expires_at,
            )
            await self._insert(link)
            return link

        async with self.session.begin_nested():
            link.access_token = tokens.access_token
            if tokens.refresh_token is not None or not keep_refresh_token:
                link.refresh_token = tokens.refresh_token
            link.token_expires_at = tokens.expires_at
            await self.session.flush()
        return link

    async def update_identity(
        self,
        link: ServiceAccountLink,
        service_account_id: str | None = None,
        email: str | None = None,
    ) -> ServiceAccountLink:
        """Set provider-side identity fields; ``None`` leaves a field unchanged."""
        if service_account_id is not None:
            link.service_account_id = service_account_id
        if email is not None:
            link.email = email
        await self.session.flush()
        return link

    async def delete(self, link: ServiceAccountLink) -> None:
        """Delete ``link``."""
        await self.session.delete(link)
        await self.session.flush()

    async def _insert(self, link: ServiceAccountLink) -> None:
        try:
            async with self.session.begin_nested():
                self.session.add(link)
                await self.session.flush()
        except IntegrityError as e:
            raise ConflictError("Service account link already exists") from e


__all__ = ["TokenStore"]
