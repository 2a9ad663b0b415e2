# src/meriter_core/services/content.py
"""Content actions that combine permission checks with quota charging."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from meriter_core.core.errors import ForbiddenError, NotFoundError, NotLoggedInError
from meriter_core.db.time import utcnow
from meriter_core.models import Comment, Community, Poll, PollCast, Publication, User, Vote
from meriter_core.models.content import POST_TYPE_BASIC, POST_TYPE_POLL, POST_TYPES
from meriter_core.models.quota import TARGET_PUBLICATION
from meriter_core.services.permissions import PermissionEvaluator, PermissionResult
from meriter_core.services.quota import KIND_FORWARD, KIND_POLL, KIND_PUBLICATION, QuotaService
from meriter_core.services.wallets import WalletService

logger = logging.getLogger(__name__)


def _require(result: PermissionResult) -> None:
    if result:
        return
    if result.reason and result.reason.endswith(".notLoggedIn"):
        raise NotLoggedInError(result.reason)
    if result.reason and result.reason.endswith((".notFound", ".noCommunity")):
        raise NotFoundError(result.reason)
    raise ForbiddenError(result.reason)


class ContentService:
    """Create publications and polls, cast votes and poll casts, propose forwards."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.permissions = PermissionEvaluator(db)
        self.quota = QuotaService(db)
        self.wallets = WalletService(db)

    def _community(self, community_id: int) -> Community:
        community = self.db.get(Community, community_id)
        if community is None:
            raise NotFoundError("Community not found")
        return community

    def create_publication(
        self,
        user: User | None,
        community_id: int,
        content: str,
        *,
        title: str | None = None,
        post_type: str = POST_TYPE_BASIC,
        beneficiary_id: int | None = None,
        quota_amount: int | None = None,
        wallet_amount: int | None = None,
    ) -> Publication:
        """Create a publication after checking permission and paying its cost."""
        if post_type not in POST_TYPES or post_type == POST_TYPE_POLL:
            raise ValueError(f"Unsupported publication type: {post_type}")
        _require(self.permissions.can_create_publication(user, community_id))
        community = self._community(community_id)

        charge = self.quota.charge_creation(
            user.id,
            community,
            KIND_PUBLICATION,
            quota_amount,
            wallet_amount,
        )
        publication = Publication(
            author_id=user.id,
            beneficiary_id=beneficiary_id,
            community_id=community.id,
            post_type=post_type,
            title=title,
            content=content,
        )
        self.db.add(publication)
        self.db.flush()
        if charge.usage is not None:
            charge.usage.reference_id = str(publication.id)
        return publication

    def create_poll(
        self,
        user: User | None,
        community_id: int,
        question: str,
        *,
        quota_amount: int | None = None,
        wallet_amount: int | None = None,
    ) -> Poll:
        _require(self.permissions.can_create_poll(user, community_id))
        community = self._community(community_id)

        charge = self.quota.charge_creation(
            user.id,
            community,
            KIND_POLL,
            quota_amount,
            wallet_amount,
        )
        poll = Poll(author_id=user.id, community_id=community.id, question=question)
        self.db.add(poll)
        self.db.flush()
        if charge.usage is not None:
            charge.usage.reference_id = str(poll.id)
        return poll

    def cast_vote(
        self,
        user: User | None,
        target_id: int,
        *,
        target_type: str = TARGET_PUBLICATION,
        direction: int = 1,
        quota_amount: int = 0,
        wallet_amount: int = 0,
    ) -> Vote:
        """Record a vote paid from quota and/or wallet.

        The beneficiary's wallet is credited for upvotes; the target's counter
        moves by the signed total.
        """
        if direction not in (1, -1):
            raise ValueError("Vote direction must be 1 or -1")
        _require(self.permissions.can_vote(user, target_id, target_type))

        model = Publication if target_type == TARGET_PUBLICATION else Comment
        target = self.db.get(model, target_id)
        community = self._community(target.community_id)
        charge = self.quota.check_vote_charge(
            user.id,
            community,
            quota_amount,
            wallet_amount,
            direction,
        )

        vote = Vote(
            user_id=user.id,
            community_id=community.id,
            target_type=target_type,
            target_id=target.id,
            direction=direction,
            amount_quota=charge.quota_amount,
            amount_wallet=charge.wallet_amount,
        )
        self.db.add(vote)
        if charge.wallet_amount:
            self.wallets.debit(user.id, community.id, charge.wallet_amount)
        if direction > 0:
            self.wallets.credit(target.effective_beneficiary_id, community.id, charge.total)
        target.vote_count += direction * charge.total
        self.db.flush()
        logger.debug(
            "User %s voted %d on %s %s (quota=%d, wallet=%d)",
            user.id,
            direction,
            target_type,
            target.id,
            charge.quota_amount,
            charge.wallet_amount,
        )
        return vote

    def cast_poll(
        self,
        user: User | None,
        poll_id: int,
        option_index: int,
        *,
        quota_amount: int = 0,
        wallet_amount: int = 0,
    ) -> PollCast:
        """Record a cast on a poll option."""
        _require(self.permissions.can_cast_poll(user, poll_id))
        poll = self.db.get(Poll, poll_id)
        community = self._community(poll.community_id)
        charge = self.quota.check_vote_charge(user.id, community, quota_amount, wallet_amount, 1)

        cast = PollCast(
            user_id=user.id,
            community_id=community.id,
            poll_id=poll.id,
            option_index=option_index,
            amount_quota=charge.quota_amount,
            amount_wallet=charge.wallet_amount,
        )
        self.db.add(cast)
        if charge.wallet_amount:
            self.wallets.debit(user.id, community.id, charge.wallet_amount)
        poll.cast_count += 1
        self.db.flush()
        return cast

    def propose_forward(
        self,
        user: User | None,
        publication_id: int,
        target_community_id: int,
        *,
        quota_amount: int | None = None,
        wallet_amount: int | None = None,
    ) -> Publication:
        """Propose forwarding a team publication into another community.

        The proposer pays the team's forward cost, and must be able to post
        the publication's type in the target community.
        """
        publication = self.db.get(Publication, publication_id)
        if publication is None:
            raise NotFoundError("forwardDisabled.notFound")
        _require(
            self.permissions.can_forward_publication(user, publication.id, publication.community_id)
        )
        _require(
            self.permissions.target_community_supports_post_type(
                target_community_id,
                publication.post_type,
                user,
            )
        )
        if publication.forward_target_community_id is not None:
            raise ForbiddenError("forwardDisabled.alreadyProposed")
        community = self._community(publication.community_id)

        self.quota.charge_creation(
            user.id,
            community,
            KIND_FORWARD,
            quota_amount,
            wallet_amount,
            reference_id=str(publication.id),
        )
        publication.forward_target_community_id = target_community_id
        publication.forward_proposed_by = user.id
        publication.forward_proposed_at = utcnow()
        self.db.flush()
        logger.info(
            "User %s proposed forwarding publication %s to community %s",
            user.id,
            publication.id,
            target_community_id,
        )
        return publication

    def add_comment(self, user: User | None, publication_id: int, content: str) -> Comment:
        """Attach a comment to a publication."""
        if user is None:
            raise NotLoggedInError("commentDisabled.notLoggedIn")
        publication = self.db.get(Publication, publication_id)
        if publication is None or publication.deleted:
            raise NotFoundError("Publication not found")
        comment = Comment(
            author_id=user.id,
            publication_id=publication.id,
            community_id=publication.community_id,
            content=content,
        )
        self.db.add(comment)
        publication.comment_count += 1
        self.db.flush()
        return comment
