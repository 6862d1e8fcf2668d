from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from reviewhub.core.config import settings
from reviewhub.db.base import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, *, expires_minutes: int | None = None) -> str:
    """Bearer token whose ``sub`` is the user id. ``exp`` is naive UTC, like every stored timestamp."""
    expire = utcnow() + timedelta(minutes=expires_minutes or settings.access_token_exp_minutes)
    return jwt.encode({"sub": user_id, "exp": expire}, settings.app_secret_key, algorithm=ALGORITHM)


def token_subject(token: str) -> str | None:
    """User id carried by ``token``, or None if the token is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    return user_id if isinstance(user_id, str) and user_id else None
