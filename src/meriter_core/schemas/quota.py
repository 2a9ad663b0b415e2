# src/meriter_core/schemas/quota.py
"""Quota-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel


class QuotaResponse(BaseModel):
    """Daily quota of the current user in one community."""

    community_id: int
    daily_quota: int
    used_today: int
    remaining_today: int
    reset_at: datetime
