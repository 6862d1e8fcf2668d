from __future__ import annotations

import logging
import sys

from sqlalchemy import select

from reviewhub.core.config import settings
from reviewhub.core.logging_config import configure_logging
from reviewhub.db.session import unit_of_work
from reviewhub.models.enums import UserRole
from reviewhub.models.users import User

logger = logging.getLogger(__name__)

USAGE = "Usage: python scripts/set_role.py <email> <role: user|moderator|admin>"


def set_role(email: str, role: UserRole) -> bool:
    """Give the user ``role``. Moderators and admins can approve reviews, which feeds aggregates."""
    with unit_of_work() as db:
        user = db.scalar(select(User).where(User.email == email.strip().lower()))
        if not user:
            return False
        previous, user.role = user.role, role.value
        logger.info("Role of %s changed: %s -> %s", user.id, previous, role.value)
        return True


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print(USAGE)
        return 2

    try:
        role = UserRole(args[1])
    except ValueError:
        print(f"Unknown role: {args[1]}")
        return 2

    configure_logging(log_dir=settings.log_dir, level=settings.log_level)
    if not set_role(args[0], role):
        print("User not found")
        return 1
    print(f"Role updated: {args[0].lower()} -> {role.value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
