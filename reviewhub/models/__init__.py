from reviewhub.models.aggregates import Aggregate
from reviewhub.models.follows import Follow
from reviewhub.models.reviews import Review, ReviewLike, ReviewMedia
from reviewhub.models.subjects import Subject, SubjectType
from reviewhub.models.users import User

__all__ = [
    "Aggregate",
    "Follow",
    "Review",
    "ReviewLike",
    "ReviewMedia",
    "Subject",
    "SubjectType",
    "User",
]
