# src/meriter_core/services/membership.py
"""Community membership and enrollment into the base communities."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from meriter_core.core.settings import settings
from meriter_core.models import Community, CommunityMember, User
from meriter_core.models.community import BASE_COMMUNITY_TYPE_TAGS, TYPE_TAG_TEAM
from meriter_core.models.role import ROLE_LEAD, ROLE_PARTICIPANT
from meriter_core.services.roles import RoleStore
from meriter_core.services.wallets import WalletService

logger = logging.getLogger(__name__)


class MembershipService:
    """Add and remove members, keeping roles and wallets consistent."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.roles = RoleStore(db)
        self.wallets = WalletService(db)

    def is_member(self, user_id: int, community_id: int) -> bool:
        return self.db.get(CommunityMember, (community_id, user_id)) is not None

    def add_member(self, user_id: int, community_id: int) -> bool:
        """Add a membership row; returns False if the user was already a member."""
        if self.is_member(user_id, community_id):
            return False
        self.db.add(CommunityMember(community_id=community_id, user_id=user_id))
        self.db.flush()
        return True

    def remove_member(self, user_id: int, community_id: int) -> bool:
        """Remove membership and the role held in the community."""
        membership = self.db.get(CommunityMember, (community_id, user_id))
        if membership is not None:
            self.db.delete(membership)
            self.db.flush()
        removed_role = self.roles.remove_role(user_id, community_id)
        return membership is not None or removed_role

    def get_member_ids(self, community_id: int) -> list[int]:
        rows = (
            self.db.query(CommunityMember.user_id)
            .filter(CommunityMember.community_id == community_id)
            .order_by(CommunityMember.user_id)
            .all()
        )
        return [row[0] for row in rows]

    def get_community_by_type_tag(self, type_tag: str) -> Community | None:
        """Return the first community with ``type_tag``, if any."""
        return (
            self.db.query(Community)
            .filter(Community.type_tag == type_tag)
            .order_by(Community.id)
            .first()
        )

    def create_team_community(self, owner: User) -> Community:
        """Create a team community named after ``owner`` with the configured defaults."""
        community = Community(
            name=settings.team_name_template.format(name=owner.name_for_display),
            type_tag=TYPE_TAG_TEAM,
            daily_emission=settings.default_daily_emission,
            post_cost=settings.default_post_cost,
            poll_cost=settings.default_poll_cost,
            forward_cost=settings.default_forward_cost,
        )
        self.db.add(community)
        self.db.flush()
        logger.info("Created team community %s for user %s", community.id, owner.id)
        return community

    def grant(
        self,
        user_id: int,
        community_id: int,
        role: str,
        *,
        keep_lead: bool = False,
    ) -> None:
        """Assign ``role`` and make sure membership and a wallet exist.

        With ``keep_lead`` an existing lead role is left untouched.
        """
        if not (keep_lead and self.roles.get_role(user_id, community_id) == ROLE_LEAD):
            self.roles.set_role(user_id, community_id, role)
        self.add_member(user_id, community_id)
        self.wallets.get_or_create(user_id, community_id)

    def ensure_user_in_base_communities(self, user_id: int) -> list[int]:
        """Enroll the user as participant in each existing base community.

        An existing role is never changed, so a lead stays lead. Returns the
        ids of the base communities the user belongs to afterwards.
        """
        enrolled: list[int] = []
        for type_tag in BASE_COMMUNITY_TYPE_TAGS:
            community = self.get_community_by_type_tag(type_tag)
            if community is None:
                continue
            if self.roles.get_role(user_id, community.id) is None:
                self.roles.set_role(user_id, community.id, ROLE_PARTICIPANT)
            self.add_member(user_id, community.id)
            self.wallets.get_or_create(user_id, community.id)
            enrolled.append(community.id)
        return enrolled
