"""Declarative bases shared by the TrekMate tables.

Two row kinds exist: mutable records (users, clubs, treks, messages) that
carry ``updated_at``, and append-only logs (GPS points, memberships,
reports) that are written once and only ever deleted.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from trekmate.core.database import Base

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UUIDMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """Mutable record with UUID key and both timestamps."""

    __abstract__ = True


class AppendOnlyModel(Base, UUIDMixin, CreatedAtMixin):
    """Write-once row: UUID key and created_at only."""

    __abstract__ = True
