# src/meriter_core/schemas/role.py
"""Role-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel


class RoleAssign(BaseModel):
    """Schema for assigning a role in a community."""

    role: Literal["lead", "participant", "viewer"]


class RoleResponse(BaseModel):
    """Role a user holds in a community."""

    user_id: int
    community_id: int
    role: str
