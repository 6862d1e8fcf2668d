from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from reviewhub.db.base import utcnow
from reviewhub.models.aggregates import Aggregate
from reviewhub.models.reviews import Review
from reviewhub.services.scores import OVERALL_KEY, mean, parse_score

logger = logging.getLogger(__name__)


def _collect_scores(reviews: list[Review]) -> dict[str, list[Decimal]]:
    """Group numeric scores by lower-cased criterion key."""
    groups: dict[str, list[Decimal]] = {}
    for r in reviews:
        ratings = r.ratings
        if ratings is None:
            continue
        if not isinstance(ratings, dict):
            logger.warning("Review %s has a malformed ratings payload (%s)", r.id, type(ratings).__name__)
            continue
        for key, raw in ratings.items():
            if not isinstance(key, str) or not key.strip():
                continue
            score = parse_score(raw)
            if score is None:
                continue
            groups.setdefault(key.strip().lower(), []).append(score)
    return groups


def build_breakdown(reviews: list[Review]) -> dict[str, Any]:
    groups = _collect_scores(reviews)
    overall = groups.get(OVERALL_KEY, [])
    return {
        "overall_average": float(mean(overall)),
        "overall_count": len(overall),
        "metrics": [
            {"key": key, "value": float(mean(scores)), "count": len(scores)}
            for key, scores in sorted(groups.items())
        ],
    }


def recompute_subject_aggregate(db: Session, *, subject_id: int) -> Aggregate | None:
    """Rebuild the cached aggregate of a subject from its non-deleted reviews.

    Full recompute, never a delta, so repeated or concurrent calls converge on
    the same row. Moderation status is deliberately not filtered. The row is
    removed when no non-deleted review is left.

    Only flushes: committing (or rolling back) is the caller's unit of work.
    """

    # Session has autoflush off; make the caller's pending review write visible.
    db.flush()

    reviews = list(
        db.scalars(
            select(Review).where(Review.subject_id == subject_id, Review.is_deleted.is_(False))
        ).all()
    )
    aggregate = db.get(Aggregate, subject_id)

    if not reviews:
        if aggregate is not None:
            db.delete(aggregate)
            db.flush()
            logger.debug("Aggregate removed for subject %s", subject_id)
        return None

    breakdown = build_breakdown(reviews)

    if aggregate is None:
        aggregate = Aggregate(subject_id=subject_id)
        db.add(aggregate)

    aggregate.count_reviews = len(reviews)
    aggregate.avg_overall = breakdown["overall_average"]
    aggregate.breakdown = breakdown
    aggregate.updated_at = utcnow()
    db.flush()

    logger.debug(
        "Aggregate recomputed for subject %s: count=%s avg=%s",
        subject_id,
        aggregate.count_reviews,
        aggregate.avg_overall,
    )
    return aggregate
