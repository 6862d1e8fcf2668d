from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from reviewhub.core.deps import get_current_user
from reviewhub.db.session import get_db
from reviewhub.models.enums import FollowTargetType
from reviewhub.models.follows import Follow
from reviewhub.models.users import User
from reviewhub.schemas.follows import FollowDeleteResponse, FollowListResponse, FollowUserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/follows", tags=["follows"])


def _find_user_follow(db: Session, *, follower_id: str, user_id: str) -> Follow | None:
    return db.scalar(
        select(Follow).where(
            Follow.follower_id == follower_id,
            Follow.target_type == FollowTargetType.user.value,
            Follow.followed_user_id == user_id,
        )
    )


@router.get("/users", response_model=FollowListResponse)
def list_followed_users(
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FollowListResponse:
    rows = db.execute(
        select(Follow, User.display_name)
        .join(User, User.id == Follow.followed_user_id)
        .where(Follow.follower_id == current.id, Follow.target_type == FollowTargetType.user.value)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
    ).all()
    items = [
        FollowUserResponse(
            id=f.id,
            followed_user_id=f.followed_user_id,
            display_name=display_name,
            created_at=f.created_at,
        )
        for f, display_name in rows
    ]
    return FollowListResponse(items=items, total=len(items))


@router.post("/users/{user_id}", response_model=FollowUserResponse, status_code=201)
def follow_user(
    user_id: str,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FollowUserResponse:
    if user_id == current.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself")

    target = db.get(User, user_id)
    if not target or not target.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if _find_user_follow(db, follower_id=current.id, user_id=user_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Follow already exists")

    follow = Follow(follower_id=current.id, target_type=FollowTargetType.user.value, followed_user_id=user_id)
    db.add(follow)
    db.commit()
    db.refresh(follow)
    logger.info("User %s follows %s", current.id, user_id)

    return FollowUserResponse(
        id=follow.id,
        followed_user_id=user_id,
        display_name=target.display_name,
        created_at=follow.created_at,
    )


@router.delete("/users/{user_id}", response_model=FollowDeleteResponse)
def unfollow_user(
    user_id: str,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FollowDeleteResponse:
    follow = _find_user_follow(db, follower_id=current.id, user_id=user_id)
    if not follow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Follow not found")

    follow_id = follow.id
    db.delete(follow)
    db.commit()
    return FollowDeleteResponse(id=follow_id, deleted=True)
