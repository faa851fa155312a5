"""Club chat models."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trekmate.models.base import BaseModel, AppendOnlyModel

if TYPE_CHECKING:
    from trekmate.models.club import Club
    from trekmate.models.user import User


class ClubMessage(BaseModel):
    """A chat message posted to a club room."""

    __tablename__ = "club_messages"
    __table_args__ = (
        Index("ix_club_messages_club_sender", "club_id", "sender_id"),
    )

    club_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clubs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Relationships
    club: Mapped["Club"] = relationship(
        "Club",
        back_populates="messages",
    )
    sender: Mapped["User"] = relationship(
        "User",
        lazy="joined",
    )
    reports: Mapped[list["MessageReport"]] = relationship(
        "MessageReport",
        back_populates="message",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<ClubMessage {self.id} in {self.club_id}>"


class MessageReport(AppendOnlyModel):
    """One member's report against one message.

    The unique constraint makes repeated reports from the same member a no-op.
    """

    __tablename__ = "message_reports"
    __table_args__ = (
        UniqueConstraint("message_id", "reported_by_id", name="uq_message_reporter"),
    )

    message_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reported_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Relationships
    message: Mapped["ClubMessage"] = relationship(
        "ClubMessage",
        back_populates="reports",
    )

    def __repr__(self) -> str:
        return f"<MessageReport {self.reported_by_id} -> {self.message_id}>"
