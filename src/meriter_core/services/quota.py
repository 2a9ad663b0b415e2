# src/meriter_core/services/quota.py
"""Daily quota accounting and charging.

Quota is never stored as a counter. Usage for the current window is folded on
demand from the three usage tables (votes, poll casts and generic quota usage
entries), so the remaining amount is always consistent with what was written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, literal_column, select, union_all
from sqlalchemy.orm import Session

from meriter_core.core.errors import InsufficientBalanceError, InsufficientQuotaError
from meriter_core.db.time import as_utc, next_midnight, start_of_day
from meriter_core.models import Community, PollCast, QuotaUsage, Vote
from meriter_core.models.community import TYPE_TAG_FUTURE_VISION
from meriter_core.models.quota import (
    USAGE_FORWARD,
    USAGE_GENERIC,
    USAGE_POLL_CREATION,
    USAGE_PUBLICATION_CREATION,
    USAGE_TYPES,
)
from meriter_core.services.wallets import WalletService

logger = logging.getLogger(__name__)

KIND_PUBLICATION = "publication"
KIND_POLL = "poll"
KIND_FORWARD = "forward"

_USAGE_TYPE_BY_KIND = {
    KIND_PUBLICATION: USAGE_PUBLICATION_CREATION,
    KIND_POLL: USAGE_POLL_CREATION,
    KIND_FORWARD: USAGE_FORWARD,
}


@dataclass(frozen=True)
class QuotaSnapshot:
    """Quota state of one user in one community."""

    daily_quota: int
    used_today: int
    remaining_today: int
    reset_at: datetime


@dataclass(frozen=True)
class Charge:
    """How a cost is split between daily quota and wallet balance."""

    quota_amount: int = 0
    wallet_amount: int = 0
    usage: QuotaUsage | None = field(default=None, compare=False)

    @property
    def total(self) -> int:
        return self.quota_amount + self.wallet_amount


class QuotaService:
    """Compute and spend the daily quota of a user in a community."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.wallets = WalletService(db)

    @staticmethod
    def daily_quota(community: Community) -> int:
        """Return the community's daily emission; future-vision has no quota."""
        if community.type_tag == TYPE_TAG_FUTURE_VISION:
            return 0
        return community.daily_emission or 0

    @staticmethod
    def window_start(community: Community, now: datetime | None = None) -> datetime:
        """Return the start of the current quota window."""
        if community.last_quota_reset_at is not None:
            return as_utc(community.last_quota_reset_at)
        return start_of_day(now)

    def used_today(
        self,
        user_id: int,
        community: Community,
        now: datetime | None = None,
    ) -> int:
        """Sum quota spent by the user since the window started."""
        usage = union_all(
            select(
                Vote.user_id.label("user_id"),
                Vote.community_id.label("community_id"),
                Vote.amount_quota.label("amount_quota"),
                Vote.created_at.label("created_at"),
            ),
            select(
                PollCast.user_id,
                PollCast.community_id,
                PollCast.amount_quota,
                PollCast.created_at,
            ),
            select(
                QuotaUsage.user_id,
                QuotaUsage.community_id,
                QuotaUsage.amount_quota,
                QuotaUsage.created_at,
            ),
        ).subquery("quota_sources")

        stmt = select(
            func.coalesce(func.sum(usage.c.amount_quota), literal_column("0"))
        ).where(
            usage.c.user_id == user_id,
            usage.c.community_id == community.id,
            usage.c.created_at >= self.window_start(community, now),
        )
        return int(self.db.execute(stmt).scalar_one())

    def remaining(self, user_id: int, community: Community, now: datetime | None = None) -> int:
        """Return daily quota minus usage; may be negative."""
        return self.daily_quota(community) - self.used_today(user_id, community, now)

    def get_quota(
        self,
        user_id: int,
        community: Community,
        now: datetime | None = None,
    ) -> QuotaSnapshot:
        daily = self.daily_quota(community)
        used = self.used_today(user_id, community, now)
        return QuotaSnapshot(
            daily_quota=daily,
            used_today=used,
            remaining_today=daily - used,
            reset_at=next_midnight(now),
        )

    @staticmethod
    def creation_cost(community: Community, kind: str) -> int:
        """Return the configured cost of creating ``kind``; unset costs are 1."""
        if kind == KIND_PUBLICATION:
            cost = community.post_cost
        elif kind == KIND_POLL:
            cost = community.poll_cost
        elif kind == KIND_FORWARD:
            cost = community.forward_cost
        else:
            raise ValueError(f"Unknown creation kind: {kind}")
        return 1 if cost is None else cost

    def charge_creation(
        self,
        user_id: int,
        community: Community,
        kind: str,
        quota_amount: int | None = None,
        wallet_amount: int | None = None,
        reference_id: str | None = None,
    ) -> Charge:
        """Validate and pay the cost of creating content.

        When neither amount is given, the whole cost is taken from quota. All
        checks run before anything is written.

        Raises:
            InsufficientQuotaError: If the quota part exceeds what remains, or
                the two parts together do not cover the cost.
            InsufficientBalanceError: If the wallet part exceeds the balance.
        """
        if community.type_tag == TYPE_TAG_FUTURE_VISION:
            return Charge()
        cost = self.creation_cost(community, kind)
        if cost <= 0:
            return Charge()

        if quota_amount is None and wallet_amount is None:
            quota_amount = cost
        quota_amount = quota_amount or 0
        wallet_amount = wallet_amount or 0
        if quota_amount < 0 or wallet_amount < 0:
            raise ValueError("Charge amounts must not be negative")

        remaining = max(self.remaining(user_id, community), 0)
        if quota_amount > remaining:
            raise InsufficientQuotaError(
                f"Insufficient quota: {remaining} remaining, {quota_amount} requested"
            )
        balance = self.wallets.balance(user_id, community.id)
        if wallet_amount > balance:
            raise InsufficientBalanceError(
                f"Insufficient wallet balance: {balance} available, {wallet_amount} requested"
            )
        if quota_amount + wallet_amount < cost:
            raise InsufficientQuotaError(
                f"Payment of {quota_amount + wallet_amount} does not cover cost {cost}"
            )

        usage = None
        if quota_amount > 0:
            usage = self.record_usage(
                user_id,
                community.id,
                quota_amount,
                usage_type=_USAGE_TYPE_BY_KIND[kind],
                reference_id=reference_id,
            )
        if wallet_amount > 0:
            self.wallets.debit(user_id, community.id, wallet_amount)
        return Charge(quota_amount=quota_amount, wallet_amount=wallet_amount, usage=usage)

    def check_vote_charge(
        self,
        user_id: int,
        community: Community,
        quota_amount: int,
        wallet_amount: int,
        direction: int,
    ) -> Charge:
        """Validate how a vote is paid for; nothing is written.

        A downvote cast with exhausted quota must be fully covered by the
        wallet on its own.
        """
        if quota_amount < 0 or wallet_amount < 0:
            raise ValueError("Vote amounts must not be negative")
        total = quota_amount + wallet_amount
        if total <= 0:
            raise ValueError("Vote amount must be positive")

        remaining = self.remaining(user_id, community)
        balance = self.wallets.balance(user_id, community.id)
        if direction < 0 and remaining <= 0 and balance < total:
            raise InsufficientBalanceError(
                f"Downvote of {total} needs wallet balance, {balance} available"
            )
        if quota_amount > max(remaining, 0):
            raise InsufficientQuotaError(
                f"Insufficient quota: {max(remaining, 0)} remaining, {quota_amount} requested"
            )
        if wallet_amount > balance:
            raise InsufficientBalanceError(
                f"Insufficient wallet balance: {balance} available, {wallet_amount} requested"
            )
        return Charge(quota_amount=quota_amount, wallet_amount=wallet_amount)

    def record_usage(
        self,
        user_id: int,
        community_id: int,
        amount: int,
        *,
        usage_type: str = USAGE_GENERIC,
        reference_id: str | None = None,
    ) -> QuotaUsage:
        """Write a quota usage entry."""
        if amount <= 0:
            raise ValueError("Quota usage amount must be positive")
        if usage_type not in USAGE_TYPES:
            raise ValueError(f"Unknown usage type: {usage_type}")
        entry = QuotaUsage(
            user_id=user_id,
            community_id=community_id,
            amount_quota=amount,
            usage_type=usage_type,
            reference_id=reference_id,
        )
        self.db.add(entry)
        self.db.flush()
        logger.debug(
            "Recorded %s quota usage of %d for user %s in community %s",
            usage_type,
            amount,
            user_id,
            community_id,
        )
        return entry
