"""Socket.IO server for club chat and club trek notifications.

Every club has one room. REST endpoints and socket handlers both publish
through the helpers below so payloads stay identical. With
``SOCKETIO_MESSAGE_QUEUE`` set, emits fan out to all API instances through
Redis.
"""

import logging
from collections import defaultdict
from typing import Any
from uuid import UUID

import socketio

from trekmate.core.config import settings
from trekmate.schemas.club import ClubMessageResponse
from trekmate.schemas.common import BaseSchema

logger = logging.getLogger(__name__)


def _client_manager() -> socketio.AsyncManager | None:
    if settings.socketio_message_queue:
        return socketio.AsyncRedisManager(settings.socketio_message_queue)
    return None


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.cors_origins,
    client_manager=_client_manager(),
    logger=settings.debug,
)


def club_room(club_id: UUID | str) -> str:
    return f"club:{club_id}"


def to_payload(data: BaseSchema | dict[str, Any]) -> dict[str, Any]:
    """Serialise a schema the same way HTTP responses are (camelCase JSON)."""
    if isinstance(data, BaseSchema):
        return data.model_dump(mode="json", by_alias=True)
    return data


class ConnectionRegistry:
    """Maps users to the socket ids connected to this process."""

    def __init__(self):
        self._sids: dict[str, set[str]] = defaultdict(set)

    def add(self, user_id: str, sid: str) -> None:
        self._sids[user_id].add(sid)

    def remove(self, user_id: str, sid: str) -> None:
        sids = self._sids.get(user_id)
        if not sids:
            return
        sids.discard(sid)
        if not sids:
            del self._sids[user_id]

    def sids_for(self, user_id: str) -> set[str]:
        return set(self._sids.get(user_id, ()))

    def __len__(self) -> int:
        return sum(len(s) for s in self._sids.values())


registry = ConnectionRegistry()


# =============================================================================
# Emit helpers
# =============================================================================


async def emit_to_club(event: str, club_id: UUID | str, data: BaseSchema | dict[str, Any]) -> None:
    await sio.emit(event, to_payload(data), room=club_room(club_id))


async def emit_error(sid: str, event: str, message: str) -> None:
    await sio.emit("error", {"event": event, "message": message}, to=sid)


async def broadcast_message(message: ClubMessageResponse) -> None:
    await emit_to_club("receive_message", message.club_id, message)


async def notify_user_kicked(club_id: UUID, user_id: UUID) -> None:
    """Tell the room a user was removed, then drop their local sockets from it."""
    await emit_to_club(
        "user_kicked",
        club_id,
        {
            "userId": str(user_id),
            "clubId": str(club_id),
            "message": "User has been removed from the club due to multiple reports",
        },
    )
    await emit_to_club(
        "user_messages_deleted",
        club_id,
        {"userId": str(user_id), "clubId": str(club_id)},
    )
    room = club_room(club_id)
    for sid in registry.sids_for(str(user_id)):
        await sio.leave_room(sid, room)
    logger.info(f"User {user_id} removed from room {room}")


def create_asgi_app(other_app) -> socketio.ASGIApp:
    """Serve Socket.IO at /socket.io and hand everything else to ``other_app``."""
    return socketio.ASGIApp(sio, other_asgi_app=other_app, socketio_path="socket.io")
