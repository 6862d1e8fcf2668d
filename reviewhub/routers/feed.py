from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reviewhub.core.config import settings
from reviewhub.core.deps import get_current_user
from reviewhub.db.session import get_db
from reviewhub.models.users import User
from reviewhub.routers.reviews import feed_page, parse_cursor
from reviewhub.schemas.reviews import ReviewFeedResponse
from reviewhub.services.feeds import ReviewFeed

router = APIRouter(tags=["feed"])


@router.get("/feed", response_model=ReviewFeedResponse)
def following_feed(
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cursor: str | None = Query(default=None, max_length=200),
    page_size: int = Query(default=settings.feed_default_page_size, ge=1, le=settings.feed_max_page_size),
) -> ReviewFeedResponse:
    after = parse_cursor(cursor)
    return feed_page(db, ReviewFeed.following(current.id), cursor=after, page_size=page_size)
