# src/meriter_core/services/__init__.py
"""Business logic services for the Meriter core."""

from .content import ContentService
from .invites import InviteService
from .membership import MembershipService
from .notifications import NotificationService
from .permissions import PermissionEvaluator, PermissionResult
from .quota import QuotaService
from .quota_reset import QuotaResetService, QuotaResetWorker
from .roles import RoleStore
from .wallets import WalletService

__all__ = [
    "ContentService",
    "InviteService",
    "MembershipService",
    "NotificationService",
    "PermissionEvaluator",
    "PermissionResult",
    "QuotaService",
    "QuotaResetService",
    "QuotaResetWorker",
    "RoleStore",
    "WalletService",
]
