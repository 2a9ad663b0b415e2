# src/meriter_core/services/roles.py
"""Per-community role storage with base-community lead synchronization."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meriter_core.models import Community, UserCommunityRole
from meriter_core.models.community import TYPE_TAG_FUTURE_VISION, TYPE_TAG_MARATHON_OF_GOOD
from meriter_core.models.role import COMMUNITY_ROLES, ROLE_LEAD, ROLE_PARTICIPANT, ROLE_VIEWER

logger = logging.getLogger(__name__)

# Communities whose leads are mirrored into each other.
PAIRED_TYPE_TAGS = {
    TYPE_TAG_MARATHON_OF_GOOD: TYPE_TAG_FUTURE_VISION,
    TYPE_TAG_FUTURE_VISION: TYPE_TAG_MARATHON_OF_GOOD,
}


def normalize_role(role: str | None) -> str | None:
    """Map the retired ``viewer`` role onto ``participant``."""
    if role == ROLE_VIEWER:
        return ROLE_PARTICIPANT
    return role


class RoleStore:
    """Read and write ``UserCommunityRole`` rows for a session.

    Writes are flushed but not committed; the caller owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _row(self, user_id: int, community_id: int) -> UserCommunityRole | None:
        return (
            self.db.query(UserCommunityRole)
            .filter(
                UserCommunityRole.user_id == user_id,
                UserCommunityRole.community_id == community_id,
            )
            .first()
        )

    def get_role(self, user_id: int, community_id: int) -> str | None:
        """Return the user's role in a community, or None."""
        row = self._row(user_id, community_id)
        return normalize_role(row.role) if row else None

    def has_role(self, user_id: int, community_id: int, role: str) -> bool:
        return self.get_role(user_id, community_id) == normalize_role(role)

    def set_role(
        self,
        user_id: int,
        community_id: int,
        role: str,
        *,
        skip_sync: bool = False,
    ) -> str:
        """Assign a role, replacing any existing one.

        When the community is one of the paired base communities, a lead grant
        or a lead downgrade is copied once into the partner community.

        Returns:
            The role actually stored.
        """
        role = normalize_role(role) or ROLE_PARTICIPANT
        if role not in COMMUNITY_ROLES:
            raise ValueError(f"Unknown community role: {role}")

        row = self._row(user_id, community_id)
        previous = normalize_role(row.role) if row else None
        if row is None:
            row = UserCommunityRole(user_id=user_id, community_id=community_id, role=role)
            self.db.add(row)
        else:
            row.role = role
        self.db.flush()

        if not skip_sync:
            self._sync_paired_role(user_id, community_id, role, previous)
        return role

    def remove_role(self, user_id: int, community_id: int) -> bool:
        """Delete the user's role in a community. Returns True if a row existed."""
        row = self._row(user_id, community_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def get_user_roles(self, user_id: int) -> Sequence[UserCommunityRole]:
        """Return every role row held by the user.

        Rows are returned as stored; use ``normalize_role`` on ``row.role``.
        """
        return (
            self.db.query(UserCommunityRole)
            .filter(UserCommunityRole.user_id == user_id)
            .order_by(UserCommunityRole.community_id)
            .all()
        )

    def get_roles_for_communities(
        self,
        user_id: int,
        community_ids: Sequence[int],
    ) -> dict[int, str]:
        """Return ``{community_id: role}`` for the given communities in one query."""
        if not community_ids:
            return {}
        rows = (
            self.db.query(UserCommunityRole.community_id, UserCommunityRole.role)
            .filter(
                UserCommunityRole.user_id == user_id,
                UserCommunityRole.community_id.in_(list(community_ids)),
            )
            .all()
        )
        return {community_id: normalize_role(role) for community_id, role in rows}

    def get_communities_by_role(self, user_id: int, role: str) -> list[int]:
        """Return ids of communities where the user holds ``role``."""
        return [
            row.community_id
            for row in self.get_user_roles(user_id)
            if normalize_role(row.role) == normalize_role(role)
        ]

    def get_users_by_role(self, community_id: int, role: str) -> list[int]:
        """Return ids of users holding ``role`` in the community."""
        wanted = normalize_role(role)
        rows = (
            self.db.query(UserCommunityRole.user_id, UserCommunityRole.role)
            .filter(UserCommunityRole.community_id == community_id)
            .order_by(UserCommunityRole.user_id)
            .all()
        )
        return [user_id for user_id, stored in rows if normalize_role(stored) == wanted]

    def get_all_users_by_role(self, role: str) -> list[int]:
        """Return distinct ids of users holding ``role`` anywhere."""
        wanted = normalize_role(role)
        rows = self.db.query(UserCommunityRole.user_id, UserCommunityRole.role).all()
        return sorted({user_id for user_id, stored in rows if normalize_role(stored) == wanted})

    def _sync_paired_role(
        self,
        user_id: int,
        community_id: int,
        new_role: str,
        previous_role: str | None,
    ) -> None:
        if new_role == ROLE_LEAD:
            propagated = ROLE_LEAD
        elif previous_role == ROLE_LEAD:
            propagated = new_role
        else:
            return

        try:
            community = self.db.get(Community, community_id)
            if community is None or community.type_tag not in PAIRED_TYPE_TAGS:
                return
            partner = (
                self.db.query(Community)
                .filter(Community.type_tag == PAIRED_TYPE_TAGS[community.type_tag])
                .order_by(Community.id)
                .first()
            )
            if partner is None:
                return
            with self.db.begin_nested():  # SAVEPOINT
                self.set_role(user_id, partner.id, propagated, skip_sync=True)
            logger.info(
                "Synchronized role %s for user %s from community %s to %s",
                propagated,
                user_id,
                community_id,
                partner.id,
            )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to synchronize role for user %s from community %s: %s",
                user_id,
                community_id,
                e,
            )
