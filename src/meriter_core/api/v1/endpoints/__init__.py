# src/meriter_core/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .invites import router as invites_router
from .permissions import router as permissions_router

__all__ = [
    "communities_router",
    "invites_router",
    "permissions_router",
]
