from __future__ import annotations

import binascii
import logging
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.orm import Session

from reviewhub.core.config import settings
from reviewhub.models.enums import FollowTargetType, ReviewStatus
from reviewhub.models.follows import Follow
from reviewhub.models.reviews import Review
from reviewhub.models.subjects import Subject

logger = logging.getLogger(__name__)


# Review ids are BIGINT-sized at most; larger values cannot be bound.
MAX_REVIEW_ID = 2**63 - 1


class InvalidCursorError(ValueError):
    pass


class PageSizeError(ValueError):
    pass


@dataclass(frozen=True)
class Cursor:
    """Sort key of the last review on a page: (created_at, id)."""

    created_at: datetime
    review_id: int

    def encode(self) -> str:
        payload = f"{self.created_at.isoformat(timespec='microseconds')}|{self.review_id}"
        return urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> Cursor:
        try:
            raw = urlsafe_b64decode(token.encode("ascii")).decode("utf-8")
        except (UnicodeError, binascii.Error, ValueError) as e:
            raise InvalidCursorError("Cursor is not valid base64") from e

        created_str, sep, id_str = raw.partition("|")
        if not sep:
            raise InvalidCursorError("Cursor is missing the review id")

        try:
            created_at = datetime.fromisoformat(created_str)
        except ValueError as e:
            raise InvalidCursorError("Cursor timestamp is not ISO-8601") from e
        if created_at.tzinfo is not None:
            try:
                created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
            except (OverflowError, ValueError) as e:
                raise InvalidCursorError("Cursor timestamp is out of range") from e

        if not (id_str.isascii() and id_str.isdigit()):
            raise InvalidCursorError("Cursor review id must be numeric")
        review_id = int(id_str)
        if review_id <= 0 or review_id > MAX_REVIEW_ID:
            raise InvalidCursorError("Cursor review id is out of range")

        return cls(created_at=created_at, review_id=review_id)

    @classmethod
    def after(cls, review: Review) -> Cursor:
        return cls(created_at=review.created_at, review_id=review.id)


class FeedKind(str, Enum):
    latest = "latest"
    following = "following"
    subject = "subject"


@dataclass(frozen=True)
class ReviewFeed:
    kind: FeedKind
    subject_id: int | None = None
    subject_type_id: int | None = None
    viewer_id: str | None = None

    @classmethod
    def latest(cls, *, subject_type_id: int | None = None) -> ReviewFeed:
        return cls(kind=FeedKind.latest, subject_type_id=subject_type_id)

    @classmethod
    def following(cls, viewer_id: str) -> ReviewFeed:
        return cls(kind=FeedKind.following, viewer_id=viewer_id)

    @classmethod
    def for_subject(cls, subject_id: int) -> ReviewFeed:
        return cls(kind=FeedKind.subject, subject_id=subject_id)


@dataclass
class ReviewPage:
    items: list[Review]
    next_cursor: Cursor | None
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def followed_user_ids(db: Session, *, follower_id: str) -> list[str]:
    stmt = select(Follow.followed_user_id).where(
        Follow.follower_id == follower_id,
        Follow.target_type == FollowTargetType.user.value,
        Follow.followed_user_id.is_not(None),
    )
    return [uid for uid in db.scalars(stmt).all() if uid]


def _base_query(db: Session, feed: ReviewFeed) -> Select | None:
    """Filter for the feed, without ordering or cursor. None means "matches nothing"."""
    stmt = select(Review).where(Review.is_deleted.is_(False))

    if feed.kind is FeedKind.latest:
        stmt = stmt.where(Review.status == ReviewStatus.approved.value)
        if feed.subject_type_id is not None:
            stmt = stmt.join(Subject, Subject.id == Review.subject_id).where(
                Subject.subject_type_id == feed.subject_type_id
            )
        return stmt

    if feed.kind is FeedKind.following:
        if not feed.viewer_id:
            raise ValueError("following feed needs a viewer")
        authors = followed_user_ids(db, follower_id=feed.viewer_id)
        if not authors:
            return None
        return stmt.where(Review.status == ReviewStatus.approved.value, Review.user_id.in_(authors))

    if feed.kind is FeedKind.subject:
        if feed.subject_id is None:
            raise ValueError("subject feed needs a subject id")
        return stmt.where(Review.subject_id == feed.subject_id)

    raise ValueError(f"Unknown feed kind: {feed.kind}")


def check_page_size(page_size: int) -> int:
    if page_size < 1 or page_size > settings.feed_max_page_size:
        raise PageSizeError(f"page_size must be between 1 and {settings.feed_max_page_size}")
    return page_size


def fetch_review_page(
    db: Session,
    feed: ReviewFeed,
    *,
    cursor: Cursor | None = None,
    page_size: int | None = None,
) -> ReviewPage:
    """Return one page of ``feed`` ordered by (created_at desc, id desc).

    Rows strictly after ``cursor`` in that order are returned. One extra row is
    read to decide whether a next cursor exists, so a short page never carries
    one. Inserts between calls may shift later pages; there is no snapshot.
    """
    size = check_page_size(page_size if page_size is not None else settings.feed_default_page_size)

    stmt = _base_query(db, feed)
    if stmt is None:
        return ReviewPage(items=[], next_cursor=None, page_size=size)

    if cursor is not None:
        stmt = stmt.where(
            or_(
                Review.created_at < cursor.created_at,
                and_(Review.created_at == cursor.created_at, Review.id < cursor.review_id),
            )
        )

    rows = list(
        db.scalars(stmt.order_by(Review.created_at.desc(), Review.id.desc()).limit(size + 1)).all()
    )

    next_cursor = None
    if len(rows) > size:
        rows = rows[:size]
        next_cursor = Cursor.after(rows[-1])

    logger.debug("Feed %s: %s items, more=%s", feed.kind.value, len(rows), next_cursor is not None)
    return ReviewPage(items=rows, next_cursor=next_cursor, page_size=size)


def count_feed_reviews(db: Session, feed: ReviewFeed) -> int:
    stmt = _base_query(db, feed)
    if stmt is None:
        return 0
    return int(db.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
