# src/meriter_core/schemas/invite.py
"""Invite-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class InviteCreate(BaseModel):
    """Schema for creating a new invite."""

    type: Literal["superadmin-to-lead", "lead-to-participant"]
    community_id: int | None = Field(
        None,
        description="Team community for participant invites; auto-detected when omitted",
    )
    target_user_id: int | None = None
    target_user_name: str | None = Field(None, max_length=200)
    expires_at: datetime | None = None


class InviteUse(BaseModel):
    """Schema for redeeming an invite."""

    code: str = Field(..., min_length=1)


class InviteResponse(BaseModel):
    """Schema for invite information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    type: str
    created_by: int
    target_user_id: int | None
    target_user_name: str | None
    community_id: int | None
    expires_at: datetime | None
    is_used: bool
    used_by: int | None
    used_at: datetime | None
    created_at: datetime


class InviteRedemptionResponse(BaseModel):
    """Result of redeeming an invite."""

    invite: InviteResponse
    community_id: int
    created_team: bool
    base_community_ids: list[int]
