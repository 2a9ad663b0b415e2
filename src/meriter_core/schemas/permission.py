# src/meriter_core/schemas/permission.py
"""Permission-related Pydantic schemas."""

from pydantic import BaseModel, Field


class PermissionResponse(BaseModel):
    """A single allow/deny decision with its reason token."""

    allowed: bool
    reason: str | None = Field(
        None,
        description="Dot-namespaced reason, e.g. voteDisabled.isAuthor",
    )


class PublicationPermissionsResponse(BaseModel):
    """What the current user may do with one publication."""

    publication_id: int
    can_vote: PermissionResponse
    can_edit: PermissionResponse
    can_delete: PermissionResponse
    can_forward: PermissionResponse


class PublicationPermissionsBatch(BaseModel):
    """Request body for the batch permissions endpoint."""

    publication_ids: list[int] = Field(..., min_length=1, max_length=200)


class CreatePermissionsResponse(BaseModel):
    """Whether the current user may create content in a community."""

    community_id: int
    can_create_publication: PermissionResponse
    can_create_poll: PermissionResponse
