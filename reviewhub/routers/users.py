from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reviewhub.core.deps import get_current_user
from reviewhub.db.session import get_db
from reviewhub.models.users import User
from reviewhub.schemas.auth import UserMeResponse
from reviewhub.schemas.users import UserProfileResponse, UserProfileUpdate

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserMeResponse)
def me(current: User = Depends(get_current_user)) -> UserMeResponse:
    return UserMeResponse(
        id=current.id,
        email=current.email,
        display_name=current.display_name,
        role=current.role,
        is_active=current.is_active,
    )


@router.get("/me/profile", response_model=UserProfileResponse)
def get_profile(current: User = Depends(get_current_user)) -> UserProfileResponse:
    return UserProfileResponse(user_id=current.id, display_name=current.display_name, avatar_url=current.avatar_url)


@router.put("/me/profile", response_model=UserProfileResponse)
def update_profile(
    payload: UserProfileUpdate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserProfileResponse:
    current.display_name = (payload.display_name or "").strip() or None
    current.avatar_url = (payload.avatar_url or "").strip() or None

    db.add(current)
    db.commit()
    db.refresh(current)

    return UserProfileResponse(user_id=current.id, display_name=current.display_name, avatar_url=current.avatar_url)
