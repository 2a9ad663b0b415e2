# src/meriter_core/api/v1/endpoints/invites.py
"""Invite endpoints for the Meriter API."""

from fastapi import APIRouter, HTTPException, Response, status

from meriter_core.api.v1.dependencies import CurrentUserDep, SessionDep, get_community_or_404
from meriter_core.models import Invite
from meriter_core.models.role import ROLE_LEAD
from meriter_core.schemas.invite import (
    InviteCreate,
    InviteRedemptionResponse,
    InviteResponse,
    InviteUse,
)
from meriter_core.services.invites import InviteService
from meriter_core.services.roles import RoleStore

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post("/", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def create_invite(
    invite_data: InviteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Invite:
    """Create an invite; the caller's role decides which types are allowed."""
    invite = InviteService(db).create_invite(
        current_user,
        invite_data.type,
        community_id=invite_data.community_id,
        target_user_id=invite_data.target_user_id,
        target_user_name=invite_data.target_user_name,
        expires_at=invite_data.expires_at,
    )
    db.commit()
    db.refresh(invite)
    return invite


@router.post("/use", response_model=InviteRedemptionResponse)
async def use_invite(
    payload: InviteUse,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> InviteRedemptionResponse:
    """Redeem an invite for the current user."""
    redemption = InviteService(db).use_invite(payload.code, current_user.id)
    db.commit()
    db.refresh(redemption.invite)
    return InviteRedemptionResponse(
        invite=InviteResponse.model_validate(redemption.invite),
        community_id=redemption.community_id,
        created_team=redemption.created_team,
        base_community_ids=redemption.base_community_ids,
    )


@router.get("/", response_model=list[InviteResponse])
async def list_my_invites(current_user: CurrentUserDep, db: SessionDep) -> list[Invite]:
    """List invites created by the current user."""
    return InviteService(db).get_invites_by_creator(current_user.id)


@router.get("/community/{community_id}", response_model=list[InviteResponse])
async def list_community_invites(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[Invite]:
    """List a community's invites; leads and superadmins only."""
    get_community_or_404(db, community_id)
    is_lead = RoleStore(db).has_role(current_user.id, community_id, ROLE_LEAD)
    if not is_lead and not current_user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only leads can view community invites",
        )
    return InviteService(db).get_invites_by_community(community_id)


@router.get("/{code}", response_model=InviteResponse)
async def get_invite(code: str, _current_user: CurrentUserDep, db: SessionDep) -> Invite:
    """Look up an invite by its code."""
    invite = InviteService(db).get_invite_by_code(code)
    if invite is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invite not found",
        )
    return invite


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invite(invite_id: int, current_user: CurrentUserDep, db: SessionDep) -> Response:
    """Delete an invite created by the current user."""
    InviteService(db).delete_invite(invite_id, current_user)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
