# src/meriter_core/services/policy.py
"""Resolve a community's effective posting, polling and voting rules.

A community stores optional rule columns and a list of explicit per-role
overrides. Resolution starts from those, then applies the built-in widening
for special community types. Rules run in a fixed order and each one receives
the policy produced by the previous rule, so a later rule always wins.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from meriter_core.models import Community
from meriter_core.models.community import (
    TYPE_TAG_FUTURE_VISION,
    TYPE_TAG_MARATHON_OF_GOOD,
    TYPE_TAG_SUPPORT,
    TYPE_TAG_TEAM,
)
from meriter_core.models.content import POST_TYPE_BASIC, POST_TYPE_PROJECT
from meriter_core.models.role import COMMUNITY_ROLES
from meriter_core.services.roles import normalize_role

ACTION_CREATE_PUBLICATION = "create_publication"
ACTION_CREATE_POLL = "create_poll"
ACTION_VOTE = "vote"

ACTIONS = (ACTION_CREATE_PUBLICATION, ACTION_CREATE_POLL, ACTION_VOTE)

DEFAULT_ROLES = frozenset(COMMUNITY_ROLES)


@dataclass(frozen=True)
class CommunityPolicy:
    """Effective rules for one community."""

    type_tag: str
    posting_roles: frozenset[str] = DEFAULT_ROLES
    polling_roles: frozenset[str] = DEFAULT_ROLES
    voting_roles: frozenset[str] = DEFAULT_ROLES
    can_vote_for_own_posts: bool = False
    can_forward: bool = False
    forward_post_types: frozenset[str] = field(default_factory=frozenset)
    requires_team_membership: bool = False
    only_team_lead: bool = False
    participants_cannot_vote_for_lead: bool = False
    polls_enabled: bool = True
    team_scoped: bool = False

    def roles_for(self, action: str) -> frozenset[str]:
        """Return the roles permitted to perform ``action``."""
        if action == ACTION_CREATE_PUBLICATION:
            return self.posting_roles
        if action == ACTION_CREATE_POLL:
            return self.polling_roles
        if action == ACTION_VOTE:
            return self.voting_roles
        raise ValueError(f"Unknown action: {action}")

    def with_roles(self, action: str, roles: Iterable[str]) -> CommunityPolicy:
        roles = frozenset(roles)
        if action == ACTION_CREATE_PUBLICATION:
            return replace(self, posting_roles=roles)
        if action == ACTION_CREATE_POLL:
            return replace(self, polling_roles=roles)
        if action == ACTION_VOTE:
            return replace(self, voting_roles=roles)
        raise ValueError(f"Unknown action: {action}")


def _configured_roles(value: list[str] | None) -> frozenset[str]:
    if value is None:
        return DEFAULT_ROLES
    return frozenset(normalize_role(role) for role in value)


class BaseRule:
    """Start from the community's configured rules, falling back to type defaults."""

    def applies_to(self, community: Community) -> bool:
        return True

    def apply(self, community: Community, policy: CommunityPolicy) -> CommunityPolicy:
        posting = _configured_roles(community.posting_allowed_roles)
        requires_team = community.requires_team_membership
        if requires_team is None:
            requires_team = community.type_tag == TYPE_TAG_TEAM
        return replace(
            policy,
            posting_roles=posting,
            polling_roles=posting,
            voting_roles=_configured_roles(community.voting_allowed_roles),
            can_vote_for_own_posts=bool(community.can_vote_for_own_posts),
            requires_team_membership=requires_team,
            only_team_lead=bool(community.only_team_lead),
            participants_cannot_vote_for_lead=bool(community.participants_cannot_vote_for_lead),
        )


class ExplicitOverrideRule:
    """Apply the community's ``{role, action, allowed}`` permission rules in order."""

    def applies_to(self, community: Community) -> bool:
        return bool(community.permission_rules)

    def apply(self, community: Community, policy: CommunityPolicy) -> CommunityPolicy:
        for rule in community.permission_rules:
            if rule.action not in ACTIONS:
                continue
            roles = set(policy.roles_for(rule.action))
            if rule.allowed:
                roles.add(rule.role)
            else:
                roles.discard(rule.role)
            policy = policy.with_roles(rule.action, roles)
        return policy


@dataclass(frozen=True)
class TypeWideningRule:
    """Grant lead and participant certain actions in one community type.

    Widening ignores the configured role lists and drops the team membership
    restrictions. ``overrides`` replaces any remaining policy fields.
    """

    type_tag: str
    actions: tuple[str, ...]
    overrides: dict[str, Any] = field(default_factory=dict)

    def applies_to(self, community: Community) -> bool:
        return community.type_tag == self.type_tag

    def apply(self, community: Community, policy: CommunityPolicy) -> CommunityPolicy:
        for action in self.actions:
            policy = policy.with_roles(action, policy.roles_for(action) | DEFAULT_ROLES)
        return replace(
            policy,
            requires_team_membership=False,
            only_team_lead=False,
            **self.overrides,
        )


RULES = (
    BaseRule(),
    ExplicitOverrideRule(),
    TypeWideningRule(
        TYPE_TAG_MARATHON_OF_GOOD,
        ACTIONS,
        {"can_vote_for_own_posts": False},
    ),
    TypeWideningRule(
        TYPE_TAG_FUTURE_VISION,
        ACTIONS,
        {"can_vote_for_own_posts": True, "polls_enabled": False},
    ),
    TypeWideningRule(
        TYPE_TAG_TEAM,
        (ACTION_CREATE_PUBLICATION, ACTION_CREATE_POLL),
        {
            "team_scoped": True,
            "can_vote_for_own_posts": False,
            "can_forward": True,
            "forward_post_types": frozenset({POST_TYPE_BASIC, POST_TYPE_PROJECT}),
        },
    ),
    TypeWideningRule(
        TYPE_TAG_SUPPORT,
        (ACTION_CREATE_PUBLICATION, ACTION_CREATE_POLL),
    ),
)


def resolve_policy(community: Community) -> CommunityPolicy:
    """Return the effective policy for ``community``."""
    policy = CommunityPolicy(type_tag=community.type_tag)
    for rule in RULES:
        if rule.applies_to(community):
            policy = rule.apply(community, policy)
    return policy
