from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from reviewhub.core.deps import require_role
from reviewhub.db.base import utcnow
from reviewhub.db.session import get_db
from reviewhub.models.enums import ReviewStatus, UserRole
from reviewhub.models.reviews import Review
from reviewhub.routers.reviews import _to_review_response
from reviewhub.schemas.reviews import ReviewListResponse
from reviewhub.services.aggregates import recompute_subject_aggregate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/moderation",
    tags=["moderation"],
    dependencies=[Depends(require_role(UserRole.moderator, UserRole.admin))],
)


def _set_review_status(db: Session, review_id: int, new_status: ReviewStatus) -> None:
    r = db.get(Review, review_id)
    if not r or r.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    r.status = new_status.value
    r.updated_at = utcnow()
    recompute_subject_aggregate(db, subject_id=r.subject_id)
    db.commit()
    logger.info("Review %s -> %s", review_id, new_status.value)


@router.get("/reviews/pending", response_model=ReviewListResponse)
def pending_reviews(db: Session = Depends(get_db)) -> ReviewListResponse:
    reviews = list(
        db.scalars(
            select(Review)
            .where(Review.status == ReviewStatus.pending.value, Review.is_deleted.is_(False))
            .order_by(Review.created_at, Review.id)
        ).all()
    )
    return ReviewListResponse(items=[_to_review_response(r) for r in reviews], total=len(reviews))


@router.post("/reviews/{review_id}/approve", status_code=204)
def approve_review(review_id: int, db: Session = Depends(get_db)) -> None:
    _set_review_status(db, review_id, ReviewStatus.approved)


@router.post("/reviews/{review_id}/reject", status_code=204)
def reject_review(review_id: int, db: Session = Depends(get_db)) -> None:
    _set_review_status(db, review_id, ReviewStatus.rejected)


@router.post("/reviews/{review_id}/flag", status_code=204)
def flag_review(review_id: int, db: Session = Depends(get_db)) -> None:
    _set_review_status(db, review_id, ReviewStatus.flagged)
