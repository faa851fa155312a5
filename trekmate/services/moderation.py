"""Crowd-sourced chat moderation: message reports and automatic kicks.

A member may report any message once. When the number of distinct members
who have reported *any* of a sender's messages in a club reaches the
configured threshold, the sender is removed from the club and every message
they posted there is deleted (their reports go with them).
"""

import enum
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trekmate.core.config import settings
from trekmate.models.chat import ClubMessage, MessageReport
from trekmate.models.club import Club
from trekmate.services.clubs import ClubService

logger = logging.getLogger(__name__)


class ReportOutcome(str, enum.Enum):
    IGNORED = "ignored"
    RECORDED = "recorded"
    KICKED = "kicked"


@dataclass
class ReportResult:
    outcome: ReportOutcome
    sender_id: UUID | None = None
    unique_reporters: int = 0
    reason: str | None = None
    messages_deleted: int = 0


class ModerationService:
    """Applies reports and enforces the kick threshold."""

    def __init__(self, db: AsyncSession, threshold: int | None = None):
        self.db = db
        self.threshold = threshold or settings.report_kick_threshold
        self.clubs = ClubService(db)

    async def count_unique_reporters(self, club_id: UUID, sender_id: UUID) -> int:
        """Distinct members who reported any of sender's messages in the club."""
        result = await self.db.execute(
            select(func.count(distinct(MessageReport.reported_by_id)))
            .join(ClubMessage, MessageReport.message_id == ClubMessage.id)
            .where(
                ClubMessage.club_id == club_id,
                ClubMessage.sender_id == sender_id,
            )
        )
        return int(result.scalar_one() or 0)

    async def report_message(
        self,
        message_id: UUID,
        reporter_id: UUID,
        club_id: UUID,
    ) -> ReportResult:
        result = await self.db.execute(
            select(ClubMessage).where(ClubMessage.id == message_id)
        )
        message = result.unique().scalar_one_or_none()
        if message is None or message.club_id != club_id:
            return ReportResult(ReportOutcome.IGNORED, reason="message not found")

        sender_id = message.sender_id
        if sender_id == reporter_id:
            return ReportResult(ReportOutcome.IGNORED, sender_id, reason="cannot report own message")

        if not await self.clubs.is_member(club_id, reporter_id):
            return ReportResult(ReportOutcome.IGNORED, sender_id, reason="reporter is not a member")

        existing = await self.db.execute(
            select(MessageReport.id).where(
                MessageReport.message_id == message_id,
                MessageReport.reported_by_id == reporter_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return ReportResult(ReportOutcome.IGNORED, sender_id, reason="already reported")

        # A concurrent duplicate loses on the unique constraint
        try:
            async with self.db.begin_nested():
                self.db.add(MessageReport(message_id=message_id, reported_by_id=reporter_id))
                await self.db.flush()
        except IntegrityError:
            return ReportResult(ReportOutcome.IGNORED, sender_id, reason="already reported")

        unique_reporters = await self.count_unique_reporters(club_id, sender_id)
        logger.info(
            f"Message {message_id} reported by {reporter_id}; sender {sender_id} "
            f"now has {unique_reporters}/{self.threshold} unique reporters in club {club_id}"
        )

        if unique_reporters < self.threshold:
            return ReportResult(ReportOutcome.RECORDED, sender_id, unique_reporters)

        creator = await self.db.execute(select(Club.creator_id).where(Club.id == club_id))
        if creator.scalar_one_or_none() == sender_id:
            logger.warning(
                f"Club {club_id} leader {sender_id} crossed the report threshold; leaders are not kicked"
            )
            return ReportResult(
                ReportOutcome.RECORDED, sender_id, unique_reporters, reason="sender is club leader"
            )

        deleted = await self.kick(club_id, sender_id)
        return ReportResult(
            ReportOutcome.KICKED,
            sender_id,
            unique_reporters,
            messages_deleted=deleted,
        )

    async def kick(self, club_id: UUID, user_id: UUID) -> int:
        """Remove user from the club and delete their messages there.

        Returns the number of messages deleted. Safe to repeat.
        """
        await self.clubs.remove_member(club_id, user_id)
        result = await self.db.execute(
            delete(ClubMessage).where(
                ClubMessage.club_id == club_id,
                ClubMessage.sender_id == user_id,
            )
        )
        await self.db.flush()
        deleted = int(result.rowcount or 0)
        logger.info(f"User {user_id} kicked from club {club_id}; {deleted} messages deleted")
        return deleted
