"""User model."""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trekmate.models.base import BaseModel

if TYPE_CHECKING:
    from trekmate.models.club import ClubMember
    from trekmate.models.trek import Trek


class ExperienceLevel(str, enum.Enum):
    """Self-reported trekking experience."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class User(BaseModel):
    """User model - authenticated via Firebase Auth."""

    __tablename__ = "users"

    firebase_uid: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    photo_url: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )

    # Profile
    username: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
    )
    bio: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    # Stored as plain string; valid values enforced via ExperienceLevel
    experience_level: Mapped[str] = mapped_column(
        String(32),
        default=ExperienceLevel.BEGINNER.value,
        nullable=False,
    )
    # E.164, used for nearby-trekker SOS alerts
    phone_number: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    emergency_contact_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    emergency_contact_phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )

    # Relationships
    memberships: Mapped[list["ClubMember"]] = relationship(
        "ClubMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    treks: Mapped[list["Trek"]] = relationship(
        "Trek",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return self.username or self.full_name or self.email

    def __repr__(self) -> str:
        return f"<User {self.email}>"
