from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from reviewhub.db.base import Base, utcnow


class Aggregate(Base):
    """Cached rollup of a subject's non-deleted reviews.

    Written only by ``recompute_subject_aggregate``; a missing row means the
    subject has no non-deleted reviews.
    """

    __tablename__ = "aggregates"

    subject_id: Mapped[int] = mapped_column(Integer, ForeignKey("subjects.id"), primary_key=True)
    count_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_overall: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
