"""Tests for the Socket.IO club chat handlers."""

import uuid
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio
from redis.exceptions import ConnectionError as RedisConnectionError
from socketio.exceptions import ConnectionRefusedError

from trekmate.core.security import create_access_token
from trekmate.realtime import handlers, server
from trekmate.realtime.server import ConnectionRegistry, club_room
from trekmate.services.errors import NotFoundError
from trekmate.services.moderation import ReportOutcome, ReportResult

USER_ID = uuid.uuid4()
CLUB_ID = uuid.uuid4()


@pytest.fixture
def sio(monkeypatch):
    """Replace the shared AsyncServer in both modules with a recording double."""
    fake = MagicMock()
    fake.emit = AsyncMock()
    fake.enter_room = AsyncMock()
    fake.leave_room = AsyncMock()
    fake.save_session = AsyncMock()
    fake.get_session = AsyncMock(return_value={"user_id": str(USER_ID)})
    monkeypatch.setattr(server, "sio", fake)
    monkeypatch.setattr(handlers, "sio", fake)
    return fake


@pytest.fixture
def session(monkeypatch):
    """Database session handed out by ``async_session_maker``."""
    db = MagicMock()
    db.get = AsyncMock(return_value=SimpleNamespace(id=USER_ID))
    db.commit = AsyncMock()
    maker = MagicMock()
    maker.return_value.__aenter__.return_value = db
    monkeypatch.setattr(handlers, "async_session_maker", maker)
    return db


def errors_emitted(sio):
    return [c.args[1] for c in sio.emit.await_args_list if c.args[0] == "error"]


class TestConnectionRegistry:
    def test_tracks_multiple_sockets_per_user(self):
        reg = ConnectionRegistry()
        reg.add("u1", "a")
        reg.add("u1", "b")
        reg.add("u2", "c")

        assert reg.sids_for("u1") == {"a", "b"}
        assert len(reg) == 3

        reg.remove("u1", "a")
        reg.remove("u1", "b")
        reg.remove("u9", "zzz")

        assert reg.sids_for("u1") == set()
        assert len(reg) == 1

    def test_club_room_name(self):
        assert club_room(CLUB_ID) == f"club:{CLUB_ID}"


class TestConnect:
    @pytest.mark.asyncio
    async def test_accepts_token_in_auth_payload(self, sio, session):
        token = create_access_token(subject=str(USER_ID))

        await handlers.connect("sid-1", {}, {"token": token})

        sio.save_session.assert_awaited_once_with("sid-1", {"user_id": str(USER_ID)})
        assert "sid-1" in server.registry.sids_for(str(USER_ID))
        server.registry.remove(str(USER_ID), "sid-1")

    @pytest.mark.asyncio
    async def test_accepts_authorization_header(self, sio, session):
        token = create_access_token(subject=str(USER_ID))

        await handlers.connect("sid-2", {"HTTP_AUTHORIZATION": f"Bearer {token}"}, None)

        sio.save_session.assert_awaited_once()
        server.registry.remove(str(USER_ID), "sid-2")

    @pytest.mark.asyncio
    async def test_rejects_missing_token(self, sio, session):
        with pytest.raises(ConnectionRefusedError):
            await handlers.connect("sid-3", {}, None)
        sio.save_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejects_unknown_user(self, sio, session):
        session.get.return_value = None
        token = create_access_token(subject=str(USER_ID))

        with pytest.raises(ConnectionRefusedError):
            await handlers.connect("sid-4", {}, {"token": token})

    @pytest.mark.asyncio
    async def test_disconnect_unregisters(self, sio):
        server.registry.add(str(USER_ID), "sid-5")

        await handlers.disconnect("sid-5")

        assert "sid-5" not in server.registry.sids_for(str(USER_ID))


class TestJoinClub:
    @pytest.mark.asyncio
    async def test_member_enters_room(self, sio, session, monkeypatch):
        clubs = MagicMock(get=AsyncMock(), is_member=AsyncMock(return_value=True))
        monkeypatch.setattr(handlers, "ClubService", lambda db: clubs)

        await handlers.join_club("sid", str(CLUB_ID))

        sio.enter_room.assert_awaited_once_with("sid", club_room(CLUB_ID))
        assert errors_emitted(sio) == []

    @pytest.mark.asyncio
    async def test_non_member_gets_error(self, sio, session, monkeypatch):
        clubs = MagicMock(get=AsyncMock(), is_member=AsyncMock(return_value=False))
        monkeypatch.setattr(handlers, "ClubService", lambda db: clubs)

        await handlers.join_club("sid", {"clubId": str(CLUB_ID)})

        sio.enter_room.assert_not_awaited()
        assert errors_emitted(sio) == [
            {"event": "join_club", "message": "Only club members can join the club chat"}
        ]

    @pytest.mark.asyncio
    async def test_missing_club_gets_error(self, sio, session, monkeypatch):
        clubs = MagicMock(get=AsyncMock(side_effect=NotFoundError("Club not found")))
        monkeypatch.setattr(handlers, "ClubService", lambda db: clubs)

        await handlers.join_club("sid", {"clubId": str(CLUB_ID)})

        assert errors_emitted(sio) == [{"event": "join_club", "message": "Club not found"}]

    @pytest.mark.asyncio
    async def test_unauthenticated_socket(self, sio):
        sio.get_session.return_value = {}

        await handlers.join_club("sid", str(CLUB_ID))

        assert errors_emitted(sio) == [{"event": "join_club", "message": "Not authenticated"}]

    @pytest.mark.asyncio
    async def test_leave_club(self, sio):
        await handlers.leave_club("sid", {"clubId": str(CLUB_ID)})

        sio.leave_room.assert_awaited_once_with("sid", club_room(CLUB_ID))


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_persists_then_broadcasts(self, sio, session, monkeypatch):
        stored = SimpleNamespace(
            id=uuid.uuid4(),
            club_id=CLUB_ID,
            sender=SimpleNamespace(id=USER_ID, full_name="Asha", photo_url=""),
            content="Summit in 20",
            created_at=datetime(2026, 6, 1, 9, 0, tzinfo=UTC),
        )
        clubs = MagicMock(post_message=AsyncMock(return_value=stored))
        monkeypatch.setattr(handlers, "ClubService", lambda db: clubs)

        await handlers.send_message("sid", {"clubId": str(CLUB_ID), "content": "Summit in 20"})

        clubs.post_message.assert_awaited_once_with(CLUB_ID, USER_ID, "Summit in 20")
        session.commit.assert_awaited_once()
        event, payload = sio.emit.await_args.args
        assert event == "receive_message"
        assert sio.emit.await_args.kwargs["room"] == club_room(CLUB_ID)
        assert payload["content"] == "Summit in 20"
        assert payload["sender"]["fullName"] == "Asha"
        assert payload["clubId"] == str(CLUB_ID)

    @pytest.mark.asyncio
    async def test_broadcast_failure_reported_to_sender(self, sio, session, monkeypatch):
        clubs = MagicMock(post_message=AsyncMock(return_value=MagicMock()))
        monkeypatch.setattr(handlers, "ClubService", lambda db: clubs)
        monkeypatch.setattr(handlers, "message_to_response", lambda message: message)
        monkeypatch.setattr(
            handlers, "broadcast_message", AsyncMock(side_effect=RedisConnectionError("queue down"))
        )

        await handlers.send_message("sid", {"clubId": str(CLUB_ID), "content": "hi"})

        session.commit.assert_awaited_once()
        assert errors_emitted(sio) == [{"event": "send_message", "message": "Internal error"}]

    @pytest.mark.asyncio
    async def test_failing_error_emit_does_not_escape(self, sio, session, monkeypatch):
        sio.emit.side_effect = RedisConnectionError("queue down")
        moderation = MagicMock(report_message=AsyncMock(side_effect=RuntimeError("boom")))
        monkeypatch.setattr(handlers, "ModerationService", lambda db: moderation)

        await handlers.report_message("sid", {"messageId": str(uuid.uuid4()), "clubId": str(CLUB_ID)})

        sio.emit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_payload(self, sio, session):
        await handlers.send_message("sid", {"content": "no club"})

        assert errors_emitted(sio) == [{"event": "send_message", "message": "Invalid payload"}]


class TestReportMessage:
    @pytest.mark.asyncio
    async def test_kick_notifies_room_and_removes_sockets(self, sio, session, monkeypatch):
        offender = uuid.uuid4()
        server.registry.add(str(offender), "offender-sid")
        moderation = MagicMock(
            report_message=AsyncMock(
                return_value=ReportResult(ReportOutcome.KICKED, offender, 5, messages_deleted=3)
            )
        )
        monkeypatch.setattr(handlers, "ModerationService", lambda db: moderation)

        await handlers.report_message("sid", {"messageId": str(uuid.uuid4()), "clubId": str(CLUB_ID)})

        events = [c.args[0] for c in sio.emit.await_args_list]
        assert events == ["user_kicked", "user_messages_deleted"]
        kicked = sio.emit.await_args_list[0].args[1]
        assert kicked["userId"] == str(offender)
        assert kicked["message"] == "User has been removed from the club due to multiple reports"
        sio.leave_room.assert_awaited_once_with("offender-sid", club_room(CLUB_ID))
        session.commit.assert_awaited_once()
        server.registry.remove(str(offender), "offender-sid")

    @pytest.mark.asyncio
    async def test_recorded_report_is_silent(self, sio, session, monkeypatch):
        moderation = MagicMock(
            report_message=AsyncMock(return_value=ReportResult(ReportOutcome.RECORDED, uuid.uuid4(), 2))
        )
        monkeypatch.setattr(handlers, "ModerationService", lambda db: moderation)

        await handlers.report_message("sid", {"messageId": str(uuid.uuid4()), "clubId": str(CLUB_ID)})

        sio.emit.assert_not_awaited()


def test_asgi_app_wraps_http_app():
    async def http_app(scope, receive, send):
        pass

    app = server.create_asgi_app(http_app)

    assert isinstance(app, socketio.ASGIApp)
