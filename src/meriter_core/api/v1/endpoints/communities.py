# src/meriter_core/api/v1/endpoints/communities.py
"""Community quota and role endpoints for the Meriter API."""

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy.orm import Session

from meriter_core.api.v1.dependencies import CurrentUserDep, SessionDep, get_community_or_404
from meriter_core.core.errors import ForbiddenError
from meriter_core.models import User
from meriter_core.models.role import ROLE_LEAD
from meriter_core.schemas.quota import QuotaResponse
from meriter_core.schemas.role import RoleAssign, RoleResponse
from meriter_core.services.membership import MembershipService
from meriter_core.services.quota import QuotaService
from meriter_core.services.roles import RoleStore

router = APIRouter(prefix="/communities", tags=["communities"])


def _require_lead(db: Session, user: User, community_id: int) -> None:
    if user.is_superadmin:
        return
    if not RoleStore(db).has_role(user.id, community_id, ROLE_LEAD):
        raise ForbiddenError("Only a lead of this community can manage roles")


@router.get("/{community_id}/quota", response_model=QuotaResponse)
async def get_quota(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> QuotaResponse:
    """Return the caller's daily quota in a community."""
    community = get_community_or_404(db, community_id)
    snapshot = QuotaService(db).get_quota(current_user.id, community)
    return QuotaResponse(
        community_id=community.id,
        daily_quota=snapshot.daily_quota,
        used_today=snapshot.used_today,
        remaining_today=snapshot.remaining_today,
        reset_at=snapshot.reset_at,
    )


@router.put("/{community_id}/roles/{user_id}", response_model=RoleResponse)
async def set_role(
    community_id: int,
    user_id: int,
    payload: RoleAssign,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> RoleResponse:
    """Assign a role to a user, adding them as a member if needed."""
    get_community_or_404(db, community_id)
    _require_lead(db, current_user, community_id)
    if db.get(User, user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    members = MembershipService(db)
    members.grant(user_id, community_id, payload.role)
    db.commit()
    return RoleResponse(
        user_id=user_id,
        community_id=community_id,
        role=members.roles.get_role(user_id, community_id),
    )


@router.delete("/{community_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    community_id: int,
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    """Remove a member and their role; members may also remove themselves."""
    get_community_or_404(db, community_id)
    if current_user.id != user_id:
        _require_lead(db, current_user, community_id)

    if not MembershipService(db).remove_member(user_id, community_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Membership not found",
        )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
