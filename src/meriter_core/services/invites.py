# src/meriter_core/services/invites.py
"""Invite creation and redemption.

Invites move from unused to used exactly once. Redeeming one grants a role in
a team community and enrolls the redeemer into the base communities.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from meriter_core.core.errors import (
    AlreadyUsedError,
    ExpiredError,
    ForbiddenError,
    NoTeamCommunityError,
    NotForYouError,
    NotFoundError,
)
from meriter_core.core.settings import settings
from meriter_core.db.time import as_utc, utcnow
from meriter_core.models import Community, Invite, User
from meriter_core.models.community import BASE_COMMUNITY_TYPE_TAGS, TYPE_TAG_TEAM
from meriter_core.models.invite import (
    INVITE_SUPERADMIN_TO_LEAD,
    INVITE_TYPES,
)
from meriter_core.models.role import ROLE_LEAD, ROLE_PARTICIPANT
from meriter_core.services.membership import MembershipService
from meriter_core.services.roles import RoleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InviteRedemption:
    """Result of a successful redemption."""

    invite: Invite
    community_id: int
    created_team: bool
    base_community_ids: list[int]


class InviteService:
    """Create, look up and redeem invites. Writes are flushed, not committed."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.roles = RoleStore(db)
        self.members = MembershipService(db)

    def _generate_code(self) -> str:
        while True:
            code = secrets.token_urlsafe(settings.invite_code_bytes)
            if self.get_invite_by_code(code) is None:
                return code

    def _resolve_team_community(self, creator: User, community_id: int | None) -> int:
        if community_id is None:
            for candidate in self.roles.get_communities_by_role(creator.id, ROLE_LEAD):
                community = self.db.get(Community, candidate)
                if community is not None and community.type_tag == TYPE_TAG_TEAM:
                    return community.id
            raise NoTeamCommunityError("Creator does not lead a team community")

        community = self.db.get(Community, community_id)
        if community is None:
            raise NotFoundError("Community not found")
        if community.type_tag != TYPE_TAG_TEAM:
            raise ForbiddenError("Participant invites can only target team communities")
        is_lead = self.roles.has_role(creator.id, community.id, ROLE_LEAD)
        if not creator.is_superadmin and not is_lead:
            raise ForbiddenError("Only a lead of the team can invite participants")
        return community.id

    def create_invite(
        self,
        creator: User,
        invite_type: str,
        *,
        community_id: int | None = None,
        target_user_id: int | None = None,
        target_user_name: str | None = None,
        expires_at: datetime | None = None,
    ) -> Invite:
        """Create an invite after checking the creator may issue ``invite_type``.

        Raises:
            ForbiddenError: The creator lacks the required role, or the target
                community has the wrong type.
            NoTeamCommunityError: A lead invite was requested without a
                community and the creator leads no team.
            NotFoundError: The explicit community does not exist.
        """
        if invite_type not in INVITE_TYPES:
            raise ValueError(f"Unknown invite type: {invite_type}")

        if creator.is_superadmin and community_id is not None:
            community = self.db.get(Community, community_id)
            if (
                community is not None
                and community.type_tag in BASE_COMMUNITY_TYPE_TAGS
                and invite_type != INVITE_SUPERADMIN_TO_LEAD
            ):
                raise ForbiddenError(
                    "Invites from base communities must be superadmin-to-lead invites"
                )

        if invite_type == INVITE_SUPERADMIN_TO_LEAD:
            if not creator.is_superadmin:
                raise ForbiddenError("Only a superadmin can create lead invites")
        else:
            community_id = self._resolve_team_community(creator, community_id)

        invite = Invite(
            code=self._generate_code(),
            type=invite_type,
            created_by=creator.id,
            target_user_id=target_user_id,
            target_user_name=target_user_name,
            community_id=community_id,
            expires_at=expires_at,
        )
        self.db.add(invite)
        self.db.flush()
        logger.info(
            "User %s created %s invite %s for community %s",
            creator.id,
            invite_type,
            invite.id,
            community_id,
        )
        return invite

    def get_invite_by_code(self, code: str) -> Invite | None:
        return self.db.query(Invite).filter(Invite.code == code).first()

    def get_invites_by_creator(self, user_id: int) -> list[Invite]:
        return (
            self.db.query(Invite)
            .filter(Invite.created_by == user_id)
            .order_by(Invite.id.desc())
            .all()
        )

    def get_invites_by_community(self, community_id: int) -> list[Invite]:
        return (
            self.db.query(Invite)
            .filter(Invite.community_id == community_id)
            .order_by(Invite.id.desc())
            .all()
        )

    def delete_invite(self, invite_id: int, user: User) -> None:
        """Delete an invite; only its creator may do so."""
        invite = self.db.get(Invite, invite_id)
        if invite is None:
            raise NotFoundError("Invite not found")
        if invite.created_by != user.id:
            raise ForbiddenError("Only the creator can delete an invite")
        self.db.delete(invite)
        self.db.flush()

    def use_invite(self, code: str, user_id: int, now: datetime | None = None) -> InviteRedemption:
        """Redeem an invite and apply its role grants.

        Raises:
            NotFoundError: No invite has this code, or the redeemer is unknown.
            AlreadyUsedError: The invite was redeemed before.
            ExpiredError: The invite's expiry has passed.
            NotForYouError: The invite is addressed to someone else.
        """
        now = now or utcnow()
        invite = self.get_invite_by_code(code)
        if invite is None:
            raise NotFoundError("Invite not found")
        if invite.is_used:
            raise AlreadyUsedError("Invite has already been used")
        if invite.expires_at is not None and as_utc(invite.expires_at) < now:
            raise ExpiredError("Invite has expired")
        if invite.target_user_id is not None and invite.target_user_id != user_id:
            raise NotForYouError("Invite is addressed to another user")
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        invite.is_used = True
        invite.used_by = user_id
        invite.used_at = now
        self.db.flush()

        created_team = False
        if invite.type == INVITE_SUPERADMIN_TO_LEAD:
            community_id = invite.community_id
            if community_id is None or self.db.get(Community, community_id) is None:
                community_id = self.members.create_team_community(user).id
                created_team = True
            self.members.grant(user_id, community_id, ROLE_LEAD)
        else:
            community = (
                self.db.get(Community, invite.community_id)
                if invite.community_id is not None
                else None
            )
            if community is None:
                raise NotFoundError("Team community not found")
            community_id = community.id
            self.members.grant(user_id, community_id, ROLE_PARTICIPANT, keep_lead=True)

        base_ids = self.members.ensure_user_in_base_communities(user_id)
        logger.info(
            "User %s redeemed %s invite %s into community %s",
            user_id,
            invite.type,
            invite.id,
            community_id,
        )
        return InviteRedemption(
            invite=invite,
            community_id=community_id,
            created_team=created_team,
            base_community_ids=base_ids,
        )
