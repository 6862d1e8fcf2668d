from __future__ import annotations

import logging
import sys

from sqlalchemy import select

from reviewhub.core.config import settings
from reviewhub.core.logging_config import configure_logging
from reviewhub.db.session import unit_of_work
from reviewhub.models.aggregates import Aggregate
from reviewhub.models.reviews import Review
from reviewhub.services.aggregates import recompute_subject_aggregate

logger = logging.getLogger(__name__)


def rebuild_all() -> dict:
    """Recompute every aggregate from scratch, one commit per subject.

    Covers subjects with reviews and subjects holding a stale aggregate row.
    """
    with unit_of_work() as db:
        subject_ids = set(db.scalars(select(Review.subject_id).distinct()).all())
        subject_ids |= set(db.scalars(select(Aggregate.subject_id)).all())

        kept = removed = 0
        for subject_id in sorted(subject_ids):
            if recompute_subject_aggregate(db, subject_id=subject_id) is None:
                removed += 1
            else:
                kept += 1
            db.commit()

        return {"subjects": len(subject_ids), "kept": kept, "removed": removed}


def main() -> int:
    configure_logging(log_dir=settings.log_dir, level=settings.log_level)
    stats = rebuild_all()
    logger.info("Aggregates rebuilt: %s", stats)
    print(stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
