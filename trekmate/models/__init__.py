"""SQLAlchemy models."""

from trekmate.models.chat import ClubMessage, MessageReport
from trekmate.models.club import Club, ClubMember
from trekmate.models.trek import Trek, TrekPoint
from trekmate.models.user import User

__all__ = [
    "User",
    "Club",
    "ClubMember",
    "ClubMessage",
    "MessageReport",
    "Trek",
    "TrekPoint",
]
