from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    # Naive UTC, microsecond precision; cursor comparisons rely on it.
    return datetime.now(timezone.utc).replace(tzinfo=None)
