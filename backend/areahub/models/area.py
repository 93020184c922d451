"""Area model.

Only the trigger bookkeeping columns of an AREA live here; the
action/reaction wiring is owned by the automation catalog.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from areahub.models.base import GUID, Base, TimestampMixin, UTCDateTime, UUIDMixin


class Area(UUIDMixin, TimestampMixin, Base):
    """A user-defined automation (one action wired to one reaction).

    Attributes:
        name: Display name
        user_id: Owning user
        triggered_count: Number of execution records created for this area
        last_triggered_at: When the last execution record was created
    """

    __tablename__ = "areas"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    triggered_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    last_triggered_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )
