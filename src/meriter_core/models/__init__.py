# src/meriter_core/models/__init__.py
"""SQLAlchemy models for the Meriter core."""

from .community import Community, CommunityMember, CommunityPermissionRule
from .content import Comment, Poll, Publication
from .invite import Invite
from .notification import Notification
from .quota import PollCast, QuotaUsage, Vote
from .role import UserCommunityRole
from .user import User
from .wallet import Wallet

__all__ = [
    "Community", "CommunityMember", "CommunityPermissionRule",
    "Comment", "Poll", "Publication",
    "Invite",
    "Notification",
    "PollCast", "QuotaUsage", "Vote",
    "UserCommunityRole",
    "User",
    "Wallet",
]
