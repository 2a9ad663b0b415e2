# src/meriter_core/models/user.py
"""SQLAlchemy models for platform users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

GLOBAL_ROLE_SUPERADMIN = "superadmin"


class User(Base):
    """Account identity with an optional platform-wide role."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    # None for regular users; "superadmin" grants every action everywhere.
    global_role: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def is_superadmin(self) -> bool:
        """Return True when the user holds the global superadmin role."""
        return self.global_role == GLOBAL_ROLE_SUPERADMIN

    @property
    def name_for_display(self) -> str:
        """Return the best available human-readable name."""
        return self.display_name or self.username or "User"
