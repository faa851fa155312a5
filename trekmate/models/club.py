"""Club models."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trekmate.models.base import BaseModel, AppendOnlyModel

if TYPE_CHECKING:
    from trekmate.models.chat import ClubMessage
    from trekmate.models.user import User


class Club(BaseModel):
    """A social group of trekkers. The creator leads club treks."""

    __tablename__ = "clubs"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    motivation: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    photo_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    creator: Mapped["User"] = relationship(
        "User",
        foreign_keys=[creator_id],
        lazy="joined",
    )
    members: Mapped[list["ClubMember"]] = relationship(
        "ClubMember",
        back_populates="club",
        cascade="all, delete-orphan",
        order_by="ClubMember.created_at",
    )
    messages: Mapped[list["ClubMessage"]] = relationship(
        "ClubMessage",
        back_populates="club",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_leader(self, user_id: uuid.UUID) -> bool:
        return self.creator_id == user_id

    def __repr__(self) -> str:
        return f"<Club {self.name}>"


class ClubMember(AppendOnlyModel):
    """Membership of a user in a club."""

    __tablename__ = "club_members"
    __table_args__ = (
        UniqueConstraint("club_id", "user_id", name="uq_club_member"),
    )

    club_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clubs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    club: Mapped["Club"] = relationship(
        "Club",
        back_populates="members",
    )
    user: Mapped["User"] = relationship(
        "User",
        back_populates="memberships",
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<ClubMember {self.user_id} in {self.club_id}>"
