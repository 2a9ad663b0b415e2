# src/meriter_core/models/community.py
"""SQLAlchemy models for communities, their rules and membership."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

TYPE_TAG_CUSTOM = "custom"
TYPE_TAG_TEAM = "team"
TYPE_TAG_MARATHON_OF_GOOD = "marathon-of-good"
TYPE_TAG_FUTURE_VISION = "future-vision"
TYPE_TAG_SUPPORT = "support"

# Singleton communities every user is enrolled into.
BASE_COMMUNITY_TYPE_TAGS = (TYPE_TAG_MARATHON_OF_GOOD, TYPE_TAG_FUTURE_VISION)


class Community(Base):
    """Community configuration read by the permission and quota engines.

    Rule columns left as NULL fall back to the defaults for the community's
    type tag.
    """

    __tablename__ = "community"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type_tag: Mapped[str] = mapped_column(Text, nullable=False, default=TYPE_TAG_CUSTOM, index=True)

    # Settings
    daily_emission: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    post_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    poll_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    forward_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Posting rules
    posting_allowed_roles: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    requires_team_membership: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    only_team_lead: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Voting rules
    voting_allowed_roles: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    can_vote_for_own_posts: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    participants_cannot_vote_for_lead: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
    )

    # Start of the current quota window; NULL means "start of today".
    last_quota_reset_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    permission_rules: Mapped[list[CommunityPermissionRule]] = relationship(
        "CommunityPermissionRule",
        back_populates="community",
        cascade="all, delete-orphan",
        order_by="CommunityPermissionRule.id",
    )


class CommunityPermissionRule(Base):
    """Explicit per-role override of a single action in one community."""

    __tablename__ = "community_permission_rule"
    __table_args__ = (
        UniqueConstraint("community_id", "role", "action", name="uq_permission_rule"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    allowed: Mapped[bool] = mapped_column(Boolean, nullable=False)

    community: Mapped[Community] = relationship("Community", back_populates="permission_rules")


class CommunityMember(Base):
    """Join table mapping users into communities."""

    __tablename__ = "community_member"

    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # No timestamps; presence implies membership.
