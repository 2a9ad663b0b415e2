# src/meriter_core/services/quota_reset.py
"""Daily quota reset job and the background worker that schedules it.

The worker runs inside the API process and fires once per local midnight in
the configured quota timezone. Resets are idempotent: running the job twice
in a row moves the window start but emits no extra notifications, because
nobody has used any quota in between.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meriter_core.db.session import SessionLocal
from meriter_core.db.time import next_midnight, utcnow
from meriter_core.models import Community
from meriter_core.services.membership import MembershipService
from meriter_core.services.notifications import NotificationService
from meriter_core.services.quota import QuotaService

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetSummary:
    """Totals of one run over all communities."""

    communities_reset: int
    notifications_created: int


class QuotaResetService:
    """Move quota windows forward and tell members their quota was restored."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.quota = QuotaService(db)
        self.members = MembershipService(db)
        self.notifications = NotificationService(db)

    def reset_quota_for_community(self, community: Community, now: datetime | None = None) -> int:
        """Reset one community's window and return the number of notifications sent.

        A member is notified only when their remaining quota actually changes.
        """
        now = now or utcnow()
        daily = self.quota.daily_quota(community)
        before = {
            user_id: self.quota.remaining(user_id, community, now)
            for user_id in self.members.get_member_ids(community.id)
        }

        community.last_quota_reset_at = now
        self.db.flush()

        notified = 0
        for user_id, amount_before in before.items():
            if amount_before == daily:
                continue
            notification = self.notifications.notify_quota_reset(
                user_id,
                community.id,
                amount_before,
                daily,
            )
            if notification is not None:
                notified += 1

        logger.info(
            "Reset quota for community %s: %d members, %d notifications",
            community.id,
            len(before),
            notified,
        )
        return notified

    def reset_all_communities_quota(self, now: datetime | None = None) -> ResetSummary:
        """Reset every community, committing each one separately.

        A community that fails is rolled back, logged and skipped.
        """
        now = now or utcnow()
        community_ids = [row[0] for row in self.db.query(Community.id).order_by(Community.id)]

        reset = 0
        notified = 0
        for community_id in community_ids:
            try:
                community = self.db.get(Community, community_id)
                if community is None:
                    continue
                notified += self.reset_quota_for_community(community, now)
                self.db.commit()
                reset += 1
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    "Quota reset failed for community %s: %s",
                    community_id,
                    e,
                    exc_info=True,
                )
        return ResetSummary(communities_reset=reset, notifications_created=notified)


def reset_all_communities_quota_at_midnight() -> ResetSummary:
    """Scheduled entry point; runs the reset in its own session."""
    with SessionLocal() as db:
        summary = QuotaResetService(db).reset_all_communities_quota()
    logger.info(
        "Midnight quota reset finished: %d communities, %d notifications",
        summary.communities_reset,
        summary.notifications_created,
    )
    return summary


class QuotaResetWorker:
    """Background task that runs the quota reset at each local midnight.

    Only one worker should run per deployment.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the scheduling loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the scheduling loop and wait for it to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    @staticmethod
    def seconds_until_next_run(now: datetime | None = None) -> float:
        now = now or utcnow()
        return max((next_midnight(now) - now).total_seconds(), 0.0)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            delay = self.seconds_until_next_run()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
                return
            except TimeoutError:
                pass

            try:
                await asyncio.to_thread(reset_all_communities_quota_at_midnight)
            except SQLAlchemyError as e:
                logger.error("QuotaResetWorker encountered database error: %s", e, exc_info=True)
                await asyncio.sleep(1.0)
