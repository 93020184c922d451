"""Service catalog model.

A Service describes an external integration. The catalog itself is managed
elsewhere; the link coordinator only reads ``requires_auth`` and ``name``.
"""

from __future__ import annotations

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from areahub.models.base import Base, TimestampMixin, UUIDMixin


class Service(UUIDMixin, TimestampMixin, Base):
    """External integration catalog entry.

    Attributes:
        name: Unique display name; also selects the OAuth2 provider
        description: Optional description
        requires_auth: Whether linking needs an OAuth2 credential
        is_active: Whether the service is offered to users
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    requires_auth: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r}>"
