"""Socket.IO event handlers for club chat.

Handlers never raise into the Socket.IO loop: failures are logged and the
acting socket receives an ``error`` event instead.
"""

import functools
import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from socketio.exceptions import ConnectionRefusedError
from sqlalchemy.exc import SQLAlchemyError

from trekmate.core.database import async_session_maker
from trekmate.core.security import get_access_subject
from trekmate.models.user import User
from trekmate.realtime.server import (
    broadcast_message,
    club_room,
    emit_error,
    notify_user_kicked,
    registry,
    sio,
)
from trekmate.schemas.club import ClubRoomPayload, ReportMessagePayload, SendMessagePayload
from trekmate.services.clubs import ClubService, message_to_response
from trekmate.services.errors import ServiceError
from trekmate.services.moderation import ModerationService, ReportOutcome

logger = logging.getLogger(__name__)


def _token_from(auth: Any, environ: dict) -> str | None:
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]
    header = environ.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:]
    return None


async def connect(sid: str, environ: dict, auth: Any = None) -> None:
    subject = get_access_subject(_token_from(auth, environ))
    if subject is None:
        raise ConnectionRefusedError("Authentication required")

    try:
        user_id = UUID(subject)
    except ValueError:
        raise ConnectionRefusedError("Authentication required") from None

    async with async_session_maker() as db:
        user = await db.get(User, user_id)
    if user is None:
        raise ConnectionRefusedError("User not found")

    await sio.save_session(sid, {"user_id": str(user_id)})
    registry.add(str(user_id), sid)
    logger.debug(f"Socket {sid} connected for user {user_id}")


async def disconnect(sid: str, *args) -> None:
    session = await sio.get_session(sid)
    user_id = session.get("user_id") if session else None
    if user_id:
        registry.remove(user_id, sid)
    logger.debug(f"Socket {sid} disconnected")


async def _report_internal_error(sid: str, event: str) -> None:
    # The error emit can fail too (e.g. message queue down); never re-raise
    try:
        await emit_error(sid, event, "Internal error")
    except Exception as e:
        logger.error(f"Could not notify {sid} about failed {event}: {e}")


def socket_event(event: str):
    """Resolve the session user and turn failures into ``error`` events."""

    def decorator(handler):
        @functools.wraps(handler)
        async def wrapper(sid: str, data: Any = None):
            session = await sio.get_session(sid)
            user_id = session.get("user_id") if session else None
            if not user_id:
                await emit_error(sid, event, "Not authenticated")
                return
            try:
                await handler(sid, UUID(user_id), data)
            except ValidationError:
                await emit_error(sid, event, "Invalid payload")
            except ServiceError as e:
                await emit_error(sid, event, e.message)
            except SQLAlchemyError as e:
                logger.error(f"Database error handling {event} from {sid}: {e}")
                await _report_internal_error(sid, event)
            except Exception:
                logger.exception(f"Unhandled error in {event} from {sid}")
                await _report_internal_error(sid, event)

        return wrapper

    return decorator


def _room_payload(data: Any) -> ClubRoomPayload:
    # Clients may send the bare club id
    if isinstance(data, str):
        data = {"clubId": data}
    return ClubRoomPayload.model_validate(data or {})


@socket_event("join_club")
async def join_club(sid: str, user_id: UUID, data: Any) -> None:
    payload = _room_payload(data)
    async with async_session_maker() as db:
        clubs = ClubService(db)
        await clubs.get(payload.club_id)
        if not await clubs.is_member(payload.club_id, user_id):
            raise ServiceError("Only club members can join the club chat")
    await sio.enter_room(sid, club_room(payload.club_id))


@socket_event("leave_club")
async def leave_club(sid: str, user_id: UUID, data: Any) -> None:
    payload = _room_payload(data)
    await sio.leave_room(sid, club_room(payload.club_id))


@socket_event("send_message")
async def send_message(sid: str, user_id: UUID, data: Any) -> None:
    payload = SendMessagePayload.model_validate(data or {})
    async with async_session_maker() as db:
        message = await ClubService(db).post_message(payload.club_id, user_id, payload.content)
        response = message_to_response(message)
        await db.commit()
    # Persisted first, then broadcast
    await broadcast_message(response)


@socket_event("report_message")
async def report_message(sid: str, user_id: UUID, data: Any) -> None:
    payload = ReportMessagePayload.model_validate(data or {})
    async with async_session_maker() as db:
        result = await ModerationService(db).report_message(
            payload.message_id, user_id, payload.club_id
        )
        await db.commit()

    if result.outcome == ReportOutcome.KICKED:
        await notify_user_kicked(payload.club_id, result.sender_id)
    elif result.outcome == ReportOutcome.IGNORED:
        logger.debug(f"Report of {payload.message_id} by {user_id} ignored: {result.reason}")


def register_handlers() -> None:
    sio.on("connect", connect)
    sio.on("disconnect", disconnect)
    sio.on("join_club", join_club)
    sio.on("leave_club", leave_club)
    sio.on("send_message", send_message)
    sio.on("report_message", report_message)
