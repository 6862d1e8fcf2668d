from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SubjectTypeCreate(BaseModel):
    key: str = Field(min_length=1, max_length=80)
    display_name: str = Field(min_length=1, max_length=200)


class SubjectTypeResponse(BaseModel):
    id: int
    key: str
    display_name: str


class SubjectCreate(BaseModel):
    subject_type_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=200, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class AggregateResponse(BaseModel):
    count_reviews: int
    avg_overall: float
    breakdown: dict[str, Any]
    updated_at: datetime


class SubjectResponse(BaseModel):
    id: int
    subject_type_id: int
    name: str
    slug: str
    created_at: datetime


class SubjectDetailResponse(SubjectResponse):
    subject_type_key: str | None
    aggregate: AggregateResponse | None


class SubjectListResponse(BaseModel):
    items: list[SubjectResponse]
    total: int
