"""Per-community role assignments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

ROLE_LEAD = "lead"
ROLE_PARTICIPANT = "participant"
# Retired value; stored rows read back as participant.
ROLE_VIEWER = "viewer"

COMMUNITY_ROLES = (ROLE_LEAD, ROLE_PARTICIPANT)


class UserCommunityRole(Base):
    """Role a user holds in a single community."""

    __tablename__ = "user_community_role"
    __table_args__ = (
        UniqueConstraint("user_id", "community_id", name="uq_user_community_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
