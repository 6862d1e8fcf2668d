from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FollowUserResponse(BaseModel):
    id: int
    followed_user_id: str
    display_name: str | None
    created_at: datetime


class FollowListResponse(BaseModel):
    items: list[FollowUserResponse]
    total: int


class FollowDeleteResponse(BaseModel):
    id: int
    deleted: bool
