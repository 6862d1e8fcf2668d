from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class ReviewStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    flagged = "flagged"


class FollowTargetType(str, Enum):
    subject = "subject"
    subject_type = "subject_type"
    user = "user"


class MediaType(str, Enum):
    image = "image"
    video = "video"
