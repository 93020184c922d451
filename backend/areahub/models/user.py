"""User model.

Users are owned by the platform's account service; this backend reads them
to validate link requests and to render link summaries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from areahub.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from areahub.models.service_link import ServiceAccountLink


class User(UUIDMixin, TimestampMixin, Base):
    """Platform user.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        email: Unique email address
        username: Display name
        service_links: Linked third-party accounts
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    username: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    service_links: Mapped[list[ServiceAccountLink]] = relationship(
        "ServiceAccountLink",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
