# src/meriter_core/services/notifications.py
"""Fire-and-forget notification sink."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meriter_core.models import Notification
from meriter_core.models.notification import NOTIFICATION_TYPE_QUOTA, SOURCE_SYSTEM

logger = logging.getLogger(__name__)


class NotificationService:
    """Persist notifications without letting failures reach the caller."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_notification(
        self,
        user_id: int,
        type_: str,
        *,
        payload: dict[str, Any] | None = None,
        title: str = "",
        message: str = "",
        source: str = SOURCE_SYSTEM,
        source_id: str | None = None,
    ) -> Notification | None:
        """Store a notification; returns None when the write fails."""
        notification = Notification(
            user_id=user_id,
            type=type_,
            source=source,
            source_id=source_id,
            payload=payload or {},
            title=title,
            message=message,
        )
        try:
            with self.db.begin_nested():  # SAVEPOINT
                self.db.add(notification)
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create %s notification for user %s: %s", type_, user_id, e)
            return None
        return notification

    def notify_quota_reset(
        self,
        user_id: int,
        community_id: int,
        amount_before: int,
        amount_after: int,
    ) -> Notification | None:
        return self.create_notification(
            user_id,
            NOTIFICATION_TYPE_QUOTA,
            payload={
                "communityId": community_id,
                "amountBefore": amount_before,
                "amountAfter": amount_after,
            },
            title="Daily quota restored",
            message=f"Your daily quota is back to {amount_after}.",
            source_id=str(community_id),
        )

    def get_notifications(self, user_id: int, *, unread_only: bool = False) -> list[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.id.desc()).all()
