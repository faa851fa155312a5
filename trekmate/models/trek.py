"""Trek (GPS-tracked hiking session) models."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trekmate.models.base import BaseModel, AppendOnlyModel, JSONType

if TYPE_CHECKING:
    from trekmate.models.club import Club
    from trekmate.models.user import User


class TrekStatus(str, enum.Enum):
    """Trek lifecycle status."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


TERMINAL_STATUSES = frozenset({TrekStatus.COMPLETED.value, TrekStatus.ABANDONED.value})


class Trek(BaseModel):
    """A recorded hiking session.

    The last received location is denormalised onto the row so live club
    status and nearby-SOS searches never scan the path table.
    """

    __tablename__ = "treks"
    __table_args__ = (
        Index("ix_treks_user_start", "user_id", "start_time"),
        Index("ix_treks_club_status", "club_id", "status"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Set while the trek is part of a club trek
    club_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clubs.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        default="My Trek",
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        default=TrekStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    duration_seconds: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Last known position
    last_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_point_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    point_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    # Running totals while in progress; the summary replaces them on completion
    distance_m: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    speed_total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    speed_samples: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    metrics_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    summary: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        default=dict,
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="treks",
        lazy="joined",
    )
    club: Mapped["Club | None"] = relationship(
        "Club",
    )
    points: Mapped[list["TrekPoint"]] = relationship(
        "TrekPoint",
        back_populates="trek",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrekPoint.timestamp",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_location(self) -> bool:
        return self.last_point_at is not None

    def __repr__(self) -> str:
        return f"<Trek {self.id} {self.status}>"


class TrekPoint(AppendOnlyModel):
    """A single GPS fix on a trek path."""

    __tablename__ = "trek_points"
    __table_args__ = (
        Index("ix_trek_points_trek_ts", "trek_id", "timestamp"),
    )

    trek_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("treks.id", ondelete="CASCADE"),
        nullable=False,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    altitude: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    speed: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    heading: Mapped[float | None] = mapped_column(Float, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    trek: Mapped["Trek"] = relationship(
        "Trek",
        back_populates="points",
    )

    def __repr__(self) -> str:
        return f"<TrekPoint {self.latitude},{self.longitude} @ {self.timestamp}>"
