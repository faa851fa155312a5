"""Club membership and chat persistence."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trekmate.core.config import settings
from trekmate.models.chat import ClubMessage
from trekmate.models.club import Club, ClubMember
from trekmate.schemas.club import ClubMessageResponse, ClubResponse
from trekmate.schemas.user import UserSummary
from trekmate.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def club_to_response(club: Club) -> ClubResponse:
    """Serialize a club with members loaded."""
    members = [UserSummary.model_validate(m.user) for m in club.members]
    return ClubResponse(
        id=club.id,
        name=club.name,
        description=club.description,
        motivation=club.motivation,
        photo_url=club.photo_url,
        creator=UserSummary.model_validate(club.creator),
        members=members,
        member_count=len(members),
        created_at=club.created_at,
    )


def message_to_response(message: ClubMessage) -> ClubMessageResponse:
    return ClubMessageResponse(
        id=message.id,
        club_id=message.club_id,
        sender=UserSummary.model_validate(message.sender),
        content=message.content,
        created_at=message.created_at,
    )


class ClubService:
    """Clubs, their members, and the chat history."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # -------------------------------------------------------------------------
    # Clubs
    # -------------------------------------------------------------------------

    async def get(self, club_id: UUID, with_members: bool = False) -> Club:
        query = select(Club).where(Club.id == club_id)
        if with_members:
            query = query.options(selectinload(Club.members))
        result = await self.db.execute(query)
        club = result.unique().scalar_one_or_none()
        if club is None:
            raise NotFoundError("Club not found")
        return club

    async def list_clubs(self) -> list[Club]:
        result = await self.db.execute(
            select(Club)
            .options(selectinload(Club.members))
            .order_by(Club.created_at.desc())
        )
        return list(result.unique().scalars().all())

    async def create(
        self,
        creator_id: UUID,
        name: str,
        description: str,
        motivation: str,
        photo_url: str | None,
    ) -> Club:
        if not photo_url:
            raise ConflictError("Club image is required")

        existing = await self.db.execute(select(Club.id).where(Club.name == name))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Club name already exists")

        club = Club(
            name=name,
            description=description,
            motivation=motivation,
            photo_url=photo_url,
            creator_id=creator_id,
        )
        self.db.add(club)
        await self.db.flush()
        # The creator is always the first member
        self.db.add(ClubMember(club_id=club.id, user_id=creator_id))
        await self.db.flush()
        logger.info(f"Club '{name}' ({club.id}) created by {creator_id}")
        return await self._reload(club.id)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def is_member(self, club_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            select(ClubMember.id).where(
                ClubMember.club_id == club_id,
                ClubMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def join(self, club_id: UUID, user_id: UUID) -> Club:
        await self.get(club_id)
        if await self.is_member(club_id, user_id):
            raise ConflictError("User is already a member")
        self.db.add(ClubMember(club_id=club_id, user_id=user_id))
        await self.db.flush()
        return await self._reload(club_id)

    async def leave(self, club_id: UUID, user_id: UUID) -> Club:
        club = await self.get(club_id)
        if not await self.is_member(club_id, user_id):
            raise ConflictError("User is not a member")
        if club.is_leader(user_id):
            raise ConflictError("The club leader cannot leave their own club")
        await self.remove_member(club_id, user_id)
        return await self._reload(club_id)

    async def remove_member(self, club_id: UUID, user_id: UUID) -> bool:
        """Delete a membership row. Returns whether one existed."""
        result = await self.db.execute(
            delete(ClubMember).where(
                ClubMember.club_id == club_id,
                ClubMember.user_id == user_id,
            )
        )
        await self.db.flush()
        return bool(result.rowcount)

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def list_messages(self, club_id: UUID, limit: int = 500) -> list[ClubMessage]:
        """Most recent messages, returned oldest first."""
        await self.get(club_id)
        result = await self.db.execute(
            select(ClubMessage)
            .where(ClubMessage.club_id == club_id)
            .order_by(ClubMessage.created_at.desc())
            .limit(limit)
        )
        messages = list(result.unique().scalars().all())
        messages.reverse()
        return messages

    async def post_message(self, club_id: UUID, sender_id: UUID, content: str) -> ClubMessage:
        """Persist a message from a member.

        The returned row has id, created_at and sender loaded so it can be
        broadcast as-is.
        """
        content = (content or "").strip()
        if not content:
            raise ConflictError("Message cannot be empty")
        if len(content) > settings.max_message_length:
            raise ConflictError(
                f"Message exceeds {settings.max_message_length} characters"
            )
        if not await self.is_member(club_id, sender_id):
            raise ConflictError("Only club members can send messages")

        message = ClubMessage(club_id=club_id, sender_id=sender_id, content=content)
        self.db.add(message)
        await self.db.flush()

        result = await self.db.execute(
            select(ClubMessage)
            .where(ClubMessage.id == message.id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    async def _reload(self, club_id: UUID) -> Club:
        # populate_existing refreshes the identity-mapped club after membership writes
        result = await self.db.execute(
            select(Club)
            .where(Club.id == club_id)
            .options(selectinload(Club.members))
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()
