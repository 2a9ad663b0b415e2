# src/meriter_core/init_db.py
"""Create tables and the singleton base communities."""

import logging

from meriter_core.core.settings import settings
from meriter_core.db.session import SessionLocal, create_tables
from meriter_core.models import Community
from meriter_core.models.community import TYPE_TAG_FUTURE_VISION, TYPE_TAG_MARATHON_OF_GOOD
from meriter_core.services.membership import MembershipService

logger = logging.getLogger(__name__)

BASE_COMMUNITIES = {
    TYPE_TAG_MARATHON_OF_GOOD: "Marathon of Good",
    TYPE_TAG_FUTURE_VISION: "Future Vision",
}


def init_db() -> list[int]:
    """Create all tables and any missing base community. Returns their ids."""
    create_tables()
    ids: list[int] = []
    with SessionLocal() as db:
        members = MembershipService(db)
        for type_tag, name in BASE_COMMUNITIES.items():
            community = members.get_community_by_type_tag(type_tag)
            if community is None:
                community = Community(
                    name=name,
                    type_tag=type_tag,
                    daily_emission=settings.default_daily_emission,
                )
                db.add(community)
                db.flush()
                logger.info("Created %s community %s", type_tag, community.id)
            ids.append(community.id)
        db.commit()
    return ids


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    init_db()
    print("Database initialized.")
