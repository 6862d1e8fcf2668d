from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from reviewhub.core.config import settings
from reviewhub.core.deps import require_role
from reviewhub.db.session import get_db
from reviewhub.models.aggregates import Aggregate
from reviewhub.models.enums import UserRole
from reviewhub.models.subjects import Subject, SubjectType
from reviewhub.routers.reviews import feed_page, parse_cursor
from reviewhub.schemas.reviews import ReviewFeedResponse
from reviewhub.schemas.subjects import (
    AggregateResponse,
    SubjectCreate,
    SubjectDetailResponse,
    SubjectListResponse,
    SubjectResponse,
    SubjectTypeCreate,
    SubjectTypeResponse,
)
from reviewhub.services.feeds import ReviewFeed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subjects"])


def _to_subject_response(s: Subject) -> SubjectResponse:
    return SubjectResponse(
        id=s.id,
        subject_type_id=s.subject_type_id,
        name=s.name,
        slug=s.slug,
        created_at=s.created_at,
    )


def _to_aggregate_response(a: Aggregate | None) -> AggregateResponse | None:
    if a is None:
        return None
    return AggregateResponse(
        count_reviews=a.count_reviews,
        avg_overall=a.avg_overall,
        breakdown=a.breakdown or {},
        updated_at=a.updated_at,
    )


def _get_subject_or_404(db: Session, subject_id: int) -> Subject:
    subject = db.get(Subject, subject_id)
    if not subject or subject.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    return subject


@router.get("/subject-types", response_model=list[SubjectTypeResponse])
def list_subject_types(db: Session = Depends(get_db)) -> list[SubjectTypeResponse]:
    types = db.scalars(select(SubjectType).order_by(SubjectType.id)).all()
    return [SubjectTypeResponse(id=t.id, key=t.key, display_name=t.display_name) for t in types]


@router.post(
    "/subject-types",
    response_model=SubjectTypeResponse,
    status_code=201,
    dependencies=[Depends(require_role(UserRole.admin))],
)
def create_subject_type(payload: SubjectTypeCreate, db: Session = Depends(get_db)) -> SubjectTypeResponse:
    key = payload.key.strip().lower()
    if db.scalar(select(SubjectType).where(SubjectType.key == key)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject type key already exists")

    st = SubjectType(key=key, display_name=payload.display_name.strip())
    db.add(st)
    db.commit()
    db.refresh(st)
    return SubjectTypeResponse(id=st.id, key=st.key, display_name=st.display_name)


@router.get("/subjects", response_model=SubjectListResponse)
def list_subjects(
    db: Session = Depends(get_db),
    subject_type_id: int | None = Query(default=None, gt=0),
    q: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> SubjectListResponse:
    stmt = select(Subject).where(Subject.is_deleted.is_(False))
    if subject_type_id is not None:
        stmt = stmt.where(Subject.subject_type_id == subject_type_id)
    if q:
        stmt = stmt.where(func.lower(Subject.name).like(f"%{q.lower()}%"))

    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = list(db.scalars(stmt.order_by(Subject.id).limit(limit).offset(offset)).all())
    return SubjectListResponse(items=[_to_subject_response(s) for s in items], total=int(total or 0))


@router.post(
    "/subjects",
    response_model=SubjectResponse,
    status_code=201,
    dependencies=[Depends(require_role(UserRole.admin))],
)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)) -> SubjectResponse:
    if not db.get(SubjectType, payload.subject_type_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject type not found")
    if db.scalar(select(Subject).where(Subject.slug == payload.slug)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already exists")

    subject = Subject(subject_type_id=payload.subject_type_id, name=payload.name.strip(), slug=payload.slug)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    logger.info("Subject created: %s (%s)", subject.id, subject.slug)
    return _to_subject_response(subject)


@router.get("/subjects/{subject_id}", response_model=SubjectDetailResponse)
def get_subject(subject_id: int, db: Session = Depends(get_db)) -> SubjectDetailResponse:
    subject = _get_subject_or_404(db, subject_id)
    base = _to_subject_response(subject)
    return SubjectDetailResponse(
        **base.model_dump(),
        subject_type_key=subject.subject_type.key if subject.subject_type else None,
        aggregate=_to_aggregate_response(db.get(Aggregate, subject_id)),
    )


@router.get("/subjects/{subject_id}/reviews", response_model=ReviewFeedResponse)
def subject_reviews(
    subject_id: int,
    db: Session = Depends(get_db),
    cursor: str | None = Query(default=None, max_length=200),
    page_size: int = Query(default=settings.feed_default_page_size, ge=1, le=settings.feed_max_page_size),
) -> ReviewFeedResponse:
    after = parse_cursor(cursor)
    _get_subject_or_404(db, subject_id)
    return feed_page(db, ReviewFeed.for_subject(subject_id), cursor=after, page_size=page_size)
