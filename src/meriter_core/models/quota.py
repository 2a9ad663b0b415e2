# src/meriter_core/models/quota.py
"""Models for the three sources of daily quota usage.

Every spend of daily quota is written to exactly one of these tables, so the
aggregate over all three is the user's usage for the window.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

TARGET_PUBLICATION = "publication"
TARGET_COMMENT = "comment"

USAGE_PUBLICATION_CREATION = "publication_creation"
USAGE_POLL_CREATION = "poll_creation"
USAGE_FORWARD = "forward"
USAGE_GENERIC = "generic"

USAGE_TYPES = (
    USAGE_PUBLICATION_CREATION,
    USAGE_POLL_CREATION,
    USAGE_FORWARD,
    USAGE_GENERIC,
)


class Vote(Base):
    """Vote on a publication or comment, paid from quota and/or wallet."""

    __tablename__ = "vote"
    __table_args__ = (
        CheckConstraint("direction IN (1, -1)", name="ck_vote_direction"),
        CheckConstraint("amount_quota >= 0", name="ck_vote_amount_quota"),
        CheckConstraint("amount_wallet >= 0", name="ck_vote_amount_wallet"),
        Index("ix_vote_user_community_created", "user_id", "community_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("community.id"), nullable=False)
    target_type: Mapped[str] = mapped_column(Text, nullable=False, default=TARGET_PUBLICATION)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # 1 = upvote, -1 = downvote.
    direction: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    amount_quota: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_wallet: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PollCast(Base):
    """A user's cast on one poll option."""

    __tablename__ = "poll_cast"
    __table_args__ = (
        Index("ix_poll_cast_user_community_created", "user_id", "community_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("community.id"), nullable=False)
    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll.id"), nullable=False)
    option_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_quota: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_wallet: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class QuotaUsage(Base):
    """Quota spent on anything other than votes and poll casts."""

    __tablename__ = "quota_usage"
    __table_args__ = (
        CheckConstraint("amount_quota > 0", name="ck_quota_usage_amount"),
        Index("ix_quota_usage_user_community_created", "user_id", "community_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("community.id"), nullable=False)
    amount_quota: Mapped[int] = mapped_column(Integer, nullable=False)
    usage_type: Mapped[str] = mapped_column(Text, nullable=False, default=USAGE_GENERIC)
    reference_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
