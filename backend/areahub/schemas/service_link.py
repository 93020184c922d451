"""Pydantic schemas for service account links.

The write path receives raw tokens from the provider exchange and never
goes through these schemas. Every read schema below is token-free: it
exposes the provider account id, email, timestamps and user/service
summaries only.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from uuid import UUID  # noqa: TC003 - Required at runtime for Pydantic

from pydantic import EmailStr, Field

from areahub.models.enums import LinkPlatform
from areahub.schemas.base import BaseSchema

# =============================================================================
# Requests
# =============================================================================


class LinkServiceRequest(BaseSchema):
    """Body for linking a service.

    ``code`` is the authorization code returned to the redirect URI. Omit it
    to confirm an existing link without contacting the provider.
    """

    code: str | None = Field(
        default=None,
        min_length=1,
        max_length=2048,
        description="OAuth2 authorization code",
    )
    platform: LinkPlatform = Field(
        default=LinkPlatform.WEB,
        description="Client platform, selects the redirect URI",
    )
    code_verifier: str | None = Field(
        default=None,
        min_length=43,
        max_length=128,
        description="PKCE code verifier, when the authorization used PKCE",
    )


class OAuth2AccountCreate(BaseSchema):
    """Register a provider account for a user without a code exchange."""

    user_id: UUID
    service_id: UUID
    oauth2_provider_user_id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None


class LinkEmailUpdate(BaseSchema):
    """Update the display email of a link."""

    email: EmailStr | None = None


# =============================================================================
# Responses
# =============================================================================


class UserSummary(BaseSchema):
    """Owning user of a link."""

    id: UUID
    email: str
    username: str | None = None


class ServiceSummary(BaseSchema):
    """Linked catalog service."""

    id: UUID
    name: str
    description: str | None = None
    requires_auth: bool


class ServiceAccountLinkResponse(BaseSchema):
    """Read representation of a link.

    Built from the ORM row; ``service_account_id`` is exposed as
    ``oauth2_provider_user_id``. Token columns are not declared here and so
    can never be serialized.
    """

    user_id: UUID
    service_id: UUID
    oauth2_provider_user_id: str | None = Field(
        default=None,
        validation_alias="service_account_id",
    )
    email: str | None = None
    token_expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary | None = None
    service: ServiceSummary | None = None


__all__ = [
    "LinkEmailUpdate",
    "LinkServiceRequest",
    "OAuth2AccountCreate",
    "ServiceAccountLinkResponse",
    "ServiceSummary",
    "UserSummary",
]
