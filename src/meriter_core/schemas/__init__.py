# src/meriter_core/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .invite import InviteCreate, InviteRedemptionResponse, InviteResponse, InviteUse
from .permission import (
    CreatePermissionsResponse,
    PermissionResponse,
    PublicationPermissionsBatch,
    PublicationPermissionsResponse,
)
from .quota import QuotaResponse
from .role import RoleAssign, RoleResponse

__all__ = [
    "InviteCreate", "InviteRedemptionResponse", "InviteResponse", "InviteUse",
    "CreatePermissionsResponse", "PermissionResponse",
    "PublicationPermissionsBatch", "PublicationPermissionsResponse",
    "QuotaResponse",
    "RoleAssign", "RoleResponse",
]
