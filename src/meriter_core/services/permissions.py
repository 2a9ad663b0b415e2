# src/meriter_core/services/permissions.py
"""Permission evaluation for publications, comments, polls and forwards.

Every check returns a ``PermissionResult``. A denial carries a dot-namespaced
reason token such as ``voteDisabled.isAuthor`` and never raises, so callers
can render the reason next to a disabled control.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from meriter_core.models import (
    Comment,
    Community,
    Poll,
    PollCast,
    Publication,
    User,
    UserCommunityRole,
    Vote,
)
from meriter_core.models.community import (
    TYPE_TAG_FUTURE_VISION,
    TYPE_TAG_MARATHON_OF_GOOD,
    TYPE_TAG_TEAM,
)
from meriter_core.models.content import POST_TYPE_POLL, POST_TYPE_PROJECT
from meriter_core.models.quota import TARGET_COMMENT, TARGET_PUBLICATION
from meriter_core.models.role import ROLE_LEAD, ROLE_PARTICIPANT
from meriter_core.services.policy import (
    ACTION_CREATE_POLL,
    ACTION_CREATE_PUBLICATION,
    CommunityPolicy,
    resolve_policy,
)
from meriter_core.services.roles import RoleStore

logger = logging.getLogger(__name__)

# Base communities where teammates may not vote for each other.
TEAMMATE_GUARDED_TYPE_TAGS = (TYPE_TAG_MARATHON_OF_GOOD, TYPE_TAG_FUTURE_VISION)


@dataclass(frozen=True)
class PermissionResult:
    """Outcome of a single permission check; truthy when allowed."""

    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> PermissionResult:
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> PermissionResult:
        return cls(False, reason)


@dataclass(frozen=True)
class ResourcePermissions:
    """Permissions of one user over one publication."""

    can_vote: PermissionResult
    can_edit: PermissionResult
    can_delete: PermissionResult
    can_forward: PermissionResult


class PermissionEvaluator:
    """Evaluate permissions against the current database state.

    Role lookups are memoized per instance; create one evaluator per request.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.roles = RoleStore(db)
        self._role_cache: dict[tuple[int, int], str | None] = {}
        self._team_cache: dict[int, frozenset[int]] = {}
        self._policy_cache: dict[int, CommunityPolicy] = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _role(self, user_id: int, community_id: int) -> str | None:
        key = (user_id, community_id)
        if key not in self._role_cache:
            self._role_cache[key] = self.roles.get_role(user_id, community_id)
        return self._role_cache[key]

    def _prefetch_roles(self, user_id: int, community_ids: Iterable[int]) -> None:
        wanted = [cid for cid in set(community_ids) if (user_id, cid) not in self._role_cache]
        if not wanted:
            return
        found = self.roles.get_roles_for_communities(user_id, wanted)
        for community_id in wanted:
            self._role_cache[(user_id, community_id)] = found.get(community_id)

    def _policy(self, community: Community) -> CommunityPolicy:
        if community.id not in self._policy_cache:
            self._policy_cache[community.id] = resolve_policy(community)
        return self._policy_cache[community.id]

    def _team_community_ids(self, user_id: int) -> frozenset[int]:
        if user_id not in self._team_cache:
            rows = (
                self.db.query(UserCommunityRole.community_id)
                .join(Community, Community.id == UserCommunityRole.community_id)
                .filter(
                    UserCommunityRole.user_id == user_id,
                    Community.type_tag == TYPE_TAG_TEAM,
                )
                .all()
            )
            self._team_cache[user_id] = frozenset(row[0] for row in rows)
        return self._team_cache[user_id]

    def are_teammates(self, user_id: int, other_user_id: int) -> bool:
        """Return True when both users hold a role in a common team community."""
        return bool(self._team_community_ids(user_id) & self._team_community_ids(other_user_id))

    def _load(self, target_type: str, resource_id: int) -> Publication | Comment | None:
        if target_type == TARGET_PUBLICATION:
            return self.db.get(Publication, resource_id)
        if target_type == TARGET_COMMENT:
            return self.db.get(Comment, resource_id)
        raise ValueError(f"Unsupported vote target: {target_type}")

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def can_vote(
        self,
        user: User | None,
        resource_id: int,
        target_type: str = TARGET_PUBLICATION,
    ) -> PermissionResult:
        """Decide whether ``user`` may vote on a publication or comment."""
        if user is None:
            return PermissionResult.deny("voteDisabled.notLoggedIn")

        resource = self._load(target_type, resource_id)
        if resource is None or resource.deleted:
            return PermissionResult.deny("voteDisabled.notFound")
        community = self.db.get(Community, resource.community_id)
        if community is None:
            return PermissionResult.deny("voteDisabled.noCommunity")
        if isinstance(resource, Publication) and resource.post_type in (
            POST_TYPE_PROJECT,
            POST_TYPE_POLL,
        ):
            return PermissionResult.deny("voteDisabled.projectPost")

        policy = self._policy(community)
        beneficiary_id = resource.effective_beneficiary_id
        is_own = user.id == beneficiary_id
        if is_own and not policy.can_vote_for_own_posts:
            return PermissionResult.deny("voteDisabled.isAuthor")

        role = self._role(user.id, community.id)
        if community.type_tag == TYPE_TAG_TEAM:
            # Team voting is restricted to the team's own members, superadmin included.
            if role is None:
                return PermissionResult.deny("voteDisabled.notTeamMember")
        elif not is_own:
            if (
                community.type_tag in TEAMMATE_GUARDED_TYPE_TAGS
                and not user.is_superadmin
                and self.are_teammates(user.id, beneficiary_id)
            ):
                return PermissionResult.deny("voteDisabled.teammate")
            if (
                policy.participants_cannot_vote_for_lead
                and role == ROLE_PARTICIPANT
                and self._role(beneficiary_id, community.id) == ROLE_LEAD
            ):
                return PermissionResult.deny("voteDisabled.participantCannotVoteForLead")

        if user.is_superadmin or role in policy.voting_roles:
            return PermissionResult.allow()
        return PermissionResult.deny("voteDisabled.roleNotAllowed")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _can_create(self, user: User | None, community_id: int, action: str) -> PermissionResult:
        if user is None:
            return PermissionResult.deny("createDisabled.notLoggedIn")
        community = self.db.get(Community, community_id)
        if community is None:
            return PermissionResult.deny("createDisabled.noCommunity")

        policy = self._policy(community)
        if action == ACTION_CREATE_POLL and not policy.polls_enabled:
            return PermissionResult.deny("pollDisabled.notSupported")
        if user.is_superadmin:
            return PermissionResult.allow()

        role = self._role(user.id, community.id)
        if role is None:
            return PermissionResult.deny("createDisabled.notMember")
        if role not in policy.roles_for(action):
            return PermissionResult.deny("createDisabled.roleNotAllowed")
        if policy.requires_team_membership and not self._team_community_ids(user.id):
            return PermissionResult.deny("createDisabled.requiresTeamMembership")
        if policy.only_team_lead and role != ROLE_LEAD:
            return PermissionResult.deny("createDisabled.onlyTeamLead")
        return PermissionResult.allow()

    def can_create_publication(self, user: User | None, community_id: int) -> PermissionResult:
        return self._can_create(user, community_id, ACTION_CREATE_PUBLICATION)

    def can_create_poll(self, user: User | None, community_id: int) -> PermissionResult:
        return self._can_create(user, community_id, ACTION_CREATE_POLL)

    def can_cast_poll(self, user: User | None, poll_id: int) -> PermissionResult:
        """Decide whether ``user`` may cast on a poll; casting spends quota."""
        if user is None:
            return PermissionResult.deny("pollDisabled.notLoggedIn")
        poll = self.db.get(Poll, poll_id)
        if poll is None or poll.deleted:
            return PermissionResult.deny("pollDisabled.notFound")
        community = self.db.get(Community, poll.community_id)
        if community is None:
            return PermissionResult.deny("pollDisabled.noCommunity")
        if not self._policy(community).polls_enabled:
            return PermissionResult.deny("pollDisabled.notSupported")
        if user.is_superadmin or self._role(user.id, community.id) is not None:
            return PermissionResult.allow()
        return PermissionResult.deny("pollDisabled.notMember")

    def target_community_supports_post_type(
        self,
        target_community_id: int,
        post_type: str,
        user: User | None,
    ) -> PermissionResult:
        """Check whether ``user`` could create ``post_type`` in the target community."""
        if post_type == POST_TYPE_POLL:
            return self.can_create_poll(user, target_community_id)
        return self.can_create_publication(user, target_community_id)

    # ------------------------------------------------------------------
    # Edit and delete
    # ------------------------------------------------------------------

    def _has_votes(self, resource: Publication | Comment | Poll) -> bool:
        if isinstance(resource, Poll):
            query = self.db.query(PollCast.id).filter(PollCast.poll_id == resource.id)
        else:
            target_type = (
                TARGET_PUBLICATION if isinstance(resource, Publication) else TARGET_COMMENT
            )
            query = self.db.query(Vote.id).filter(
                Vote.target_type == target_type,
                Vote.target_id == resource.id,
            )
        return query.first() is not None or bool(
            getattr(resource, "cast_count", 0) or getattr(resource, "vote_count", 0)
        )

    def _has_comments(self, resource: Publication | Comment | Poll) -> bool:
        if isinstance(resource, Publication):
            exists = (
                self.db.query(Comment.id)
                .filter(Comment.publication_id == resource.id, Comment.deleted.is_(False))
                .first()
                is not None
            )
            return exists or resource.comment_count > 0
        if isinstance(resource, Comment):
            return resource.reply_count > 0
        return resource.comment_count > 0

    def _can_modify(
        self,
        user: User | None,
        resource: Publication | Comment | Poll | None,
        prefix: str,
    ) -> PermissionResult:
        if user is None:
            return PermissionResult.deny(f"{prefix}.notLoggedIn")
        if resource is None:
            return PermissionResult.deny(f"{prefix}.notFound")
        if resource.deleted:
            return PermissionResult.deny(f"{prefix}.deleted")
        if user.is_superadmin or self._role(user.id, resource.community_id) == ROLE_LEAD:
            return PermissionResult.allow()
        if user.id == resource.author_id:
            if self._has_votes(resource):
                return PermissionResult.deny(f"{prefix}.hasVotes")
            if self._has_comments(resource):
                return PermissionResult.deny(f"{prefix}.hasComments")
            return PermissionResult.allow()
        return PermissionResult.deny(f"{prefix}.insufficientPermissions")

    def can_edit_publication(self, user: User | None, publication_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Publication, publication_id), "editDisabled")

    def can_delete_publication(self, user: User | None, publication_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Publication, publication_id), "deleteDisabled")

    def can_edit_comment(self, user: User | None, comment_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Comment, comment_id), "editDisabled")

    def can_delete_comment(self, user: User | None, comment_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Comment, comment_id), "deleteDisabled")

    def can_edit_poll(self, user: User | None, poll_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Poll, poll_id), "editDisabled")

    def can_delete_poll(self, user: User | None, poll_id: int) -> PermissionResult:
        return self._can_modify(user, self.db.get(Poll, poll_id), "deleteDisabled")

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------

    def can_forward_publication(
        self,
        user: User | None,
        publication_id: int,
        community_id: int,
    ) -> PermissionResult:
        """Decide whether ``user`` may propose forwarding a team publication."""
        if user is None:
            return PermissionResult.deny("forwardDisabled.notLoggedIn")
        publication = self.db.get(Publication, publication_id)
        if publication is None or publication.deleted:
            return PermissionResult.deny("forwardDisabled.notFound")
        if publication.community_id != community_id:
            return PermissionResult.deny("forwardDisabled.wrongCommunity")
        community = self.db.get(Community, community_id)
        if community is None:
            return PermissionResult.deny("forwardDisabled.noCommunity")

        policy = self._policy(community)
        if not policy.can_forward:
            return PermissionResult.deny("forwardDisabled.notTeamCommunity")
        if publication.post_type not in policy.forward_post_types:
            return PermissionResult.deny("forwardDisabled.postType")
        if (
            user.is_superadmin
            or user.id == publication.author_id
            or self._role(user.id, community_id) == ROLE_LEAD
        ):
            return PermissionResult.allow()
        return PermissionResult.deny("forwardDisabled.insufficientPermissions")

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _publication_permissions(
        self,
        user: User | None,
        publication: Publication,
    ) -> ResourcePermissions:
        return ResourcePermissions(
            can_vote=self.can_vote(user, publication.id),
            can_edit=self.can_edit_publication(user, publication.id),
            can_delete=self.can_delete_publication(user, publication.id),
            can_forward=self.can_forward_publication(
                user,
                publication.id,
                publication.community_id,
            ),
        )

    def publication_permissions(
        self,
        user: User | None,
        publication_ids: Iterable[int],
    ) -> dict[int, ResourcePermissions]:
        """Return permissions for many publications keyed by publication id.

        The user's roles in every involved community are loaded with one query
        before the individual checks run.
        """
        ids = list(dict.fromkeys(publication_ids))
        if not ids:
            return {}

        publications = self.db.query(Publication).filter(Publication.id.in_(ids)).all()
        by_community: dict[int, list[Publication]] = defaultdict(list)
        for publication in publications:
            by_community[publication.community_id].append(publication)
        if user is not None:
            self._prefetch_roles(user.id, by_community.keys())

        result: dict[int, ResourcePermissions] = {}
        for group in by_community.values():
            for publication in group:
                result[publication.id] = self._publication_permissions(user, publication)

        missing = [pid for pid in ids if pid not in result]
        if missing:
            logger.debug("Permission batch skipped %d unknown publications", len(missing))
        for publication_id in missing:
            result[publication_id] = ResourcePermissions(
                can_vote=PermissionResult.deny("voteDisabled.notFound"),
                can_edit=PermissionResult.deny("editDisabled.notFound"),
                can_delete=PermissionResult.deny("deleteDisabled.notFound"),
                can_forward=PermissionResult.deny("forwardDisabled.notFound"),
            )
        return {pid: result[pid] for pid in ids}
