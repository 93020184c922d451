"""Service account link model.

A ServiceAccountLink is the stored OAuth2 credential tying one platform user
to one external provider account for one catalog Service. At most one link
exists per (user_id, service_id); the pair is the primary key.

Token columns are encrypted at rest and are never part of ``repr`` or of any
read schema.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from areahub.models.base import GUID, Base, EncryptedText, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from areahub.models.service import Service
    from areahub.models.user import User


class ServiceAccountLink(TimestampMixin, Base):
    """OAuth2 credential for a (user, service) pair.

    Attributes:
        user_id: Owning user (primary key part)
        service_id: Linked service (primary key part)
        access_token: Current access token (encrypted at rest)
        refresh_token: Refresh token, if the provider issued one
        token_expires_at: Access token expiry, if the provider reported a TTL
        service_account_id: Account id on the provider side (display only)
        email: Account email on the provider side (display only)
        created_at: Timestamp of creation (from TimestampMixin)
        updated_at: Timestamp of last update (from TimestampMixin)
    """

    __tablename__ = "service_account_links"
    __table_args__ = (
        Index(
            "ix_service_account_links_service_account",
            "service_id",
            "service_account_id",
        ),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    service_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("services.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Credentials
    access_token: Mapped[str | None] = mapped_column(
        EncryptedText(),
        nullable=True,
    )

    refresh_token: Mapped[str | None] = mapped_column(
        EncryptedText(),
        nullable=True,
    )

    token_expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    # Provider-side identity
    service_account_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Relationships
    user: Mapped[User] = relationship(
        "User",
        back_populates="service_links",
        lazy="joined",
    )

    service: Mapped[Service] = relationship(
        "Service",
        lazy="joined",
    )

    @property
    def has_refresh_token(self) -> bool:
        """True when the provider issued a refresh token for this link."""
        return bool(self.refresh_token)

    def is_expired(self, now: datetime) -> bool:
        """Check whether the access token has expired at ``now``.

        Links without a reported expiry never count as expired.
        """
        return self.token_expires_at is not None and self.token_expires_at <= now

    def __repr__(self) -> str:
        return (
            f"<ServiceAccountLink user_id={self.user_id} "
            f"service_id={self.service_id} expires_at={self.token_expires_at}>"
        )
