"""SQLAlchemy models for publications, comments and polls."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base
from meriter_core.db.time import utcnow

POST_TYPE_BASIC = "basic"
POST_TYPE_PROJECT = "project"
POST_TYPE_POLL = "poll"

POST_TYPES = (POST_TYPE_BASIC, POST_TYPE_PROJECT, POST_TYPE_POLL)


class Publication(Base):
    """Primary content entity produced by users.

    Publications are soft-deleted only.
    """

    __tablename__ = "publication"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
        index=True,
    )
    # Receives the merits instead of the author when set.
    beneficiary_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    post_type: Mapped[str] = mapped_column(Text, nullable=False, default=POST_TYPE_BASIC)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    vote_count: Mapped[int] = mapped_column(default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(default=0, nullable=False)
    deleted: Mapped[bool] = mapped_column(default=False, nullable=False)
    # Pending proposal to forward the post into another community.
    forward_target_community_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=True,
    )
    forward_proposed_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    forward_proposed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def effective_beneficiary_id(self) -> int:
        """Return who receives votes: the beneficiary if distinct, else the author."""
        if self.beneficiary_id is not None and self.beneficiary_id != self.author_id:
            return self.beneficiary_id
        return self.author_id


class Comment(Base):
    """Comment attached to a publication."""

    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
    )
    publication_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("publication.id"),
        nullable=False,
        index=True,
    )
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    vote_count: Mapped[int] = mapped_column(default=0, nullable=False)
    reply_count: Mapped[int] = mapped_column(default=0, nullable=False)
    deleted: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def effective_beneficiary_id(self) -> int:
        """Comments have no separate beneficiary."""
        return self.author_id


class Poll(Base):
    """Poll created in a community; casts are its engagement."""

    __tablename__ = "poll"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
    )
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    cast_count: Mapped[int] = mapped_column(default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(default=0, nullable=False)
    deleted: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
