from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from reviewhub.core.config import settings
from reviewhub.core.deps import get_current_user
from reviewhub.core.rate_limit import REVIEW_LIKE, REVIEW_WRITE, rate_limit
from reviewhub.db.base import utcnow
from reviewhub.db.session import get_db
from reviewhub.models.enums import ReviewStatus
from reviewhub.models.reviews import Review, ReviewLike, ReviewMedia
from reviewhub.models.subjects import Subject
from reviewhub.models.users import User
from reviewhub.schemas.reviews import (
    ReviewCreate,
    ReviewDeleteResponse,
    ReviewDetailResponse,
    ReviewFeedResponse,
    ReviewLikeResponse,
    ReviewListResponse,
    ReviewMediaCreate,
    ReviewMediaResponse,
    ReviewRatingIn,
    ReviewResponse,
    ReviewUpdate,
)
from reviewhub.services.aggregates import recompute_subject_aggregate
from reviewhub.services.feeds import (
    Cursor,
    InvalidCursorError,
    PageSizeError,
    ReviewFeed,
    count_feed_reviews,
    fetch_review_page,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _to_review_response(r: Review) -> ReviewResponse:
    return ReviewResponse(
        id=r.id,
        subject_id=r.subject_id,
        user_id=r.user_id,
        title=r.title,
        content=r.content,
        excerpt=r.excerpt,
        ratings=r.ratings or {},
        tags=list(r.tags or []),
        status=ReviewStatus(r.status),
        media_count=r.media_count,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _ratings_to_map(ratings: list[ReviewRatingIn]) -> dict[str, float] | None:
    if not ratings:
        return None
    return {r.key: r.score for r in ratings}


def parse_cursor(token: str | None) -> Cursor | None:
    if not token:
        return None
    try:
        return Cursor.decode(token)
    except InvalidCursorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid cursor: {e}")


def feed_page(db: Session, feed: ReviewFeed, *, cursor: Cursor | None, page_size: int) -> ReviewFeedResponse:
    try:
        page = fetch_review_page(db, feed, cursor=cursor, page_size=page_size)
    except PageSizeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return ReviewFeedResponse(
        items=[_to_review_response(r) for r in page.items],
        total=count_feed_reviews(db, feed),
        page_size=page.page_size,
        next_cursor=page.next_cursor.encode() if page.next_cursor else None,
        has_more=page.has_more,
    )


def _get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.get(Review, review_id)
    if not review or review.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


def _get_own_review(db: Session, review_id: int, current: User) -> Review:
    review = _get_review_or_404(db, review_id)
    if review.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this review")
    return review


def _like_count(db: Session, review_id: int) -> int:
    return int(db.scalar(select(func.count(ReviewLike.id)).where(ReviewLike.review_id == review_id)) or 0)


@router.get("/latest", response_model=ReviewFeedResponse)
def latest_reviews(
    db: Session = Depends(get_db),
    subject_type_id: int | None = Query(default=None, gt=0),
    cursor: str | None = Query(default=None, max_length=200),
    page_size: int = Query(default=settings.feed_default_page_size, ge=1, le=settings.feed_max_page_size),
) -> ReviewFeedResponse:
    after = parse_cursor(cursor)
    return feed_page(db, ReviewFeed.latest(subject_type_id=subject_type_id), cursor=after, page_size=page_size)


@router.get("", response_model=ReviewListResponse)
def list_reviews(
    db: Session = Depends(get_db),
    subject_id: int | None = Query(default=None, gt=0),
    user_id: str | None = Query(default=None, max_length=36),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> ReviewListResponse:
    stmt = select(Review).where(Review.is_deleted.is_(False))
    if subject_id is not None:
        stmt = stmt.where(Review.subject_id == subject_id)
    if user_id:
        stmt = stmt.where(Review.user_id == user_id)

    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = list(
        db.scalars(stmt.order_by(Review.created_at.desc(), Review.id.desc()).limit(limit).offset(offset)).all()
    )
    return ReviewListResponse(items=[_to_review_response(r) for r in items], total=int(total or 0))


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=201,
    dependencies=[rate_limit(REVIEW_WRITE)],
)
def create_review(
    payload: ReviewCreate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewResponse:
    subject = db.get(Subject, payload.subject_id)
    if not subject or subject.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")

    duplicate = db.scalar(
        select(Review.id).where(
            Review.subject_id == payload.subject_id,
            Review.user_id == current.id,
            Review.is_deleted.is_(False),
        )
    )
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already submitted a review for this subject",
        )

    now = utcnow()
    review = Review(
        subject_id=payload.subject_id,
        user_id=current.id,
        title=payload.title,
        content=(payload.content or "").strip() or None,
        excerpt=(payload.excerpt or "").strip() or None,
        ratings=_ratings_to_map(payload.ratings),
        tags=payload.tags,
        status=ReviewStatus.pending.value,
        media_count=0,
        created_at=now,
        updated_at=now,
    )
    db.add(review)
    recompute_subject_aggregate(db, subject_id=payload.subject_id)
    db.commit()
    db.refresh(review)
    logger.info("Review %s created for subject %s", review.id, review.subject_id)

    return _to_review_response(review)


@router.get("/{review_id}", response_model=ReviewDetailResponse)
def get_review(review_id: int, db: Session = Depends(get_db)) -> ReviewDetailResponse:
    review = _get_review_or_404(db, review_id)
    base = _to_review_response(review)
    return ReviewDetailResponse(
        **base.model_dump(),
        like_count=_like_count(db, review_id),
        media=[ReviewMediaResponse(id=m.id, review_id=m.review_id, url=m.url, type=m.type) for m in review.media],
    )


@router.put("/{review_id}", response_model=ReviewResponse, dependencies=[rate_limit(REVIEW_WRITE)])
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewResponse:
    review = _get_own_review(db, review_id, current)

    review.title = payload.title
    review.content = (payload.content or "").strip() or None
    review.excerpt = (payload.excerpt or "").strip() or None
    review.ratings = _ratings_to_map(payload.ratings)
    review.tags = payload.tags
    # Edits go back through moderation.
    review.status = ReviewStatus.pending.value
    review.updated_at = utcnow()

    recompute_subject_aggregate(db, subject_id=review.subject_id)
    db.commit()
    db.refresh(review)
    return _to_review_response(review)


@router.delete("/{review_id}", response_model=ReviewDeleteResponse, dependencies=[rate_limit(REVIEW_WRITE)])
def delete_review(
    review_id: int,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewDeleteResponse:
    review = _get_own_review(db, review_id, current)

    review.is_deleted = True
    review.status = ReviewStatus.pending.value
    review.updated_at = utcnow()

    recompute_subject_aggregate(db, subject_id=review.subject_id)
    db.commit()
    logger.info("Review %s deleted", review_id)
    return ReviewDeleteResponse(id=review_id, deleted=True)


@router.post(
    "/{review_id}/like",
    response_model=ReviewLikeResponse,
    status_code=201,
    dependencies=[rate_limit(REVIEW_LIKE)],
)
def like_review(
    review_id: int,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewLikeResponse:
    _get_review_or_404(db, review_id)
    exists = db.scalar(
        select(ReviewLike.id).where(ReviewLike.review_id == review_id, ReviewLike.user_id == current.id)
    )
    if exists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Review already liked")

    db.add(ReviewLike(review_id=review_id, user_id=current.id))
    db.commit()
    return ReviewLikeResponse(review_id=review_id, liked=True, like_count=_like_count(db, review_id))


@router.delete("/{review_id}/like", response_model=ReviewLikeResponse, dependencies=[rate_limit(REVIEW_LIKE)])
def unlike_review(
    review_id: int,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewLikeResponse:
    _get_review_or_404(db, review_id)
    like = db.scalar(
        select(ReviewLike).where(ReviewLike.review_id == review_id, ReviewLike.user_id == current.id)
    )
    if not like:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Like not found")

    db.delete(like)
    db.commit()
    return ReviewLikeResponse(review_id=review_id, liked=False, like_count=_like_count(db, review_id))


@router.post(
    "/{review_id}/media",
    response_model=ReviewMediaResponse,
    status_code=201,
    dependencies=[rate_limit(REVIEW_WRITE)],
)
def add_review_media(
    review_id: int,
    payload: ReviewMediaCreate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewMediaResponse:
    review = _get_own_review(db, review_id, current)

    media = ReviewMedia(review_id=review.id, url=payload.url.strip(), type=payload.type.value)
    db.add(media)
    review.media_count = (review.media_count or 0) + 1
    review.updated_at = utcnow()
    db.commit()
    db.refresh(media)
    return ReviewMediaResponse(id=media.id, review_id=media.review_id, url=media.url, type=media.type)
