"""Invite codes that grant roles when redeemed."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

INVITE_SUPERADMIN_TO_LEAD = "superadmin-to-lead"
INVITE_LEAD_TO_PARTICIPANT = "lead-to-participant"

INVITE_TYPES = (INVITE_SUPERADMIN_TO_LEAD, INVITE_LEAD_TO_PARTICIPANT)


class Invite(Base):
    """Single-use invite.

    ``is_used`` only ever moves from False to True; expiry is checked at
    redemption time rather than by a background sweep.
    """

    __tablename__ = "invite"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
        index=True,
    )
    target_user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    target_user_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    community_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=True,
        index=True,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
