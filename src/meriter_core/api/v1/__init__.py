# src/meriter_core/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import communities_router, invites_router, permissions_router

__all__ = [
    "communities_router",
    "invites_router",
    "permissions_router",
]
