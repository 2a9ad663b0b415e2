# src/meriter_core/api/v1/endpoints/permissions.py
"""Permission endpoints for the Meriter API.

These endpoints only report decisions; they never perform the action.
Anonymous callers receive ``*.notLoggedIn`` denials instead of a 401.
"""

from fastapi import APIRouter, HTTPException, status

from meriter_core.api.v1.dependencies import OptionalUserDep, SessionDep, get_community_or_404
from meriter_core.models import Publication
from meriter_core.schemas.permission import (
    CreatePermissionsResponse,
    PermissionResponse,
    PublicationPermissionsBatch,
    PublicationPermissionsResponse,
)
from meriter_core.services.permissions import (
    PermissionEvaluator,
    PermissionResult,
    ResourcePermissions,
)

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _to_response(result: PermissionResult) -> PermissionResponse:
    return PermissionResponse(allowed=result.allowed, reason=result.reason)


def _publication_response(
    publication_id: int,
    permissions: ResourcePermissions,
) -> PublicationPermissionsResponse:
    return PublicationPermissionsResponse(
        publication_id=publication_id,
        can_vote=_to_response(permissions.can_vote),
        can_edit=_to_response(permissions.can_edit),
        can_delete=_to_response(permissions.can_delete),
        can_forward=_to_response(permissions.can_forward),
    )


@router.get("/publications/{publication_id}", response_model=PublicationPermissionsResponse)
async def get_publication_permissions(
    publication_id: int,
    current_user: OptionalUserDep,
    db: SessionDep,
) -> PublicationPermissionsResponse:
    """Report what the caller may do with a publication."""
    if db.get(Publication, publication_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Publication not found",
        )
    permissions = PermissionEvaluator(db).publication_permissions(current_user, [publication_id])
    return _publication_response(publication_id, permissions[publication_id])


@router.post("/publications/batch", response_model=list[PublicationPermissionsResponse])
async def get_publication_permissions_batch(
    payload: PublicationPermissionsBatch,
    current_user: OptionalUserDep,
    db: SessionDep,
) -> list[PublicationPermissionsResponse]:
    """Report permissions for several publications at once."""
    permissions = PermissionEvaluator(db).publication_permissions(
        current_user,
        payload.publication_ids,
    )
    return [_publication_response(pid, result) for pid, result in permissions.items()]


@router.get("/communities/{community_id}/create", response_model=CreatePermissionsResponse)
async def get_create_permissions(
    community_id: int,
    current_user: OptionalUserDep,
    db: SessionDep,
) -> CreatePermissionsResponse:
    """Report whether the caller may create publications and polls in a community."""
    get_community_or_404(db, community_id)
    evaluator = PermissionEvaluator(db)
    return CreatePermissionsResponse(
        community_id=community_id,
        can_create_publication=_to_response(
            evaluator.can_create_publication(current_user, community_id)
        ),
        can_create_poll=_to_response(evaluator.can_create_poll(current_user, community_id)),
    )
