from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from reviewhub.models.enums import MediaType, ReviewStatus

MAX_TAGS_PER_REVIEW = 10
MAX_TAG_LENGTH = 32


class ReviewRatingIn(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    score: float = Field(ge=0, le=5)

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Rating key is required")
        return v


class _ReviewBody(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    content: str | None = Field(default=None, max_length=20000)
    excerpt: str | None = Field(default=None, max_length=512)
    ratings: list[ReviewRatingIn] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS_PER_REVIEW)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()

    @field_validator("tags")
    @classmethod
    def _tags_valid(cls, tags: list[str]) -> list[str]:
        seen: set[str] = set()
        for tag in tags:
            t = tag.strip()
            if not t:
                raise ValueError("Tags cannot be blank")
            if len(t) > MAX_TAG_LENGTH:
                raise ValueError(f"Tags cannot exceed {MAX_TAG_LENGTH} characters")
            if t.lower() in seen:
                raise ValueError("Tags must be unique")
            seen.add(t.lower())
        return [t.strip() for t in tags]


class ReviewCreate(_ReviewBody):
    subject_id: int = Field(gt=0)


class ReviewUpdate(_ReviewBody):
    pass


class ReviewResponse(BaseModel):
    id: int
    subject_id: int
    user_id: str
    title: str | None
    content: str | None
    excerpt: str | None
    ratings: dict[str, Any]
    tags: list[str]
    status: ReviewStatus
    media_count: int
    created_at: datetime
    updated_at: datetime


class ReviewMediaCreate(BaseModel):
    url: str = Field(min_length=1, max_length=1000)
    type: MediaType = MediaType.image


class ReviewMediaResponse(BaseModel):
    id: int
    review_id: int
    url: str
    type: MediaType


class ReviewDetailResponse(ReviewResponse):
    like_count: int
    media: list[ReviewMediaResponse]


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int


class ReviewFeedResponse(BaseModel):
    items: list[ReviewResponse]
    total: int
    page_size: int
    next_cursor: str | None
    has_more: bool


class ReviewDeleteResponse(BaseModel):
    id: int
    deleted: bool


class ReviewLikeResponse(BaseModel):
    review_id: int
    liked: bool
    like_count: int
