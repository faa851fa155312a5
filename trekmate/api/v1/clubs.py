"""Club, club chat history and club trek endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, status

from trekmate.api.deps import CurrentUser, DbSession, http_error
from trekmate.realtime.server import emit_to_club
from trekmate.schemas.club import (
    ClubCreate,
    ClubMembershipResponse,
    ClubMessageResponse,
    ClubResponse,
)
from trekmate.schemas.club_trek import (
    ActiveClubTrekResponse,
    ClubTrekActionResponse,
    ClubTrekRequest,
    GroupAnalysisResponse,
    LiveStatusResponse,
    StopClubTrekResponse,
)
from trekmate.services.club_trek import ClubTrekService
from trekmate.services.clubs import ClubService, club_to_response, message_to_response
from trekmate.services.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Clubs
# =============================================================================


@router.post("", response_model=ClubResponse, status_code=status.HTTP_201_CREATED)
async def create_club(payload: ClubCreate, user: CurrentUser, db: DbSession) -> ClubResponse:
    try:
        club = await ClubService(db).create(
            creator_id=user.id,
            name=payload.name,
            description=payload.description,
            motivation=payload.motivation,
            photo_url=payload.photo_url,
        )
    except ServiceError as e:
        raise http_error(e) from e
    return club_to_response(club)


@router.get("", response_model=list[ClubResponse])
async def list_clubs(user: CurrentUser, db: DbSession) -> list[ClubResponse]:
    clubs = await ClubService(db).list_clubs()
    return [club_to_response(c) for c in clubs]


@router.get("/{club_id}", response_model=ClubResponse)
async def get_club(club_id: UUID, user: CurrentUser, db: DbSession) -> ClubResponse:
    try:
        club = await ClubService(db).get(club_id, with_members=True)
    except ServiceError as e:
        raise http_error(e) from e
    return club_to_response(club)


@router.get("/{club_id}/messages", response_model=list[ClubMessageResponse])
async def list_messages(
    club_id: UUID,
    user: CurrentUser,
    db: DbSession,
    limit: int = Query(500, ge=1, le=1000),
) -> list[ClubMessageResponse]:
    """Chat history, oldest first."""
    try:
        messages = await ClubService(db).list_messages(club_id, limit=limit)
    except ServiceError as e:
        raise http_error(e) from e
    return [message_to_response(m) for m in messages]


@router.post("/{club_id}/join", response_model=ClubMembershipResponse)
async def join_club(club_id: UUID, user: CurrentUser, db: DbSession) -> ClubMembershipResponse:
    try:
        club = await ClubService(db).join(club_id, user.id)
    except ServiceError as e:
        raise http_error(e) from e
    return ClubMembershipResponse(message="Joined club successfully", club=club_to_response(club))


@router.post("/{club_id}/leave", response_model=ClubMembershipResponse)
async def leave_club(club_id: UUID, user: CurrentUser, db: DbSession) -> ClubMembershipResponse:
    try:
        club = await ClubService(db).leave(club_id, user.id)
    except ServiceError as e:
        raise http_error(e) from e
    return ClubMembershipResponse(message="Left club successfully", club=club_to_response(club))


# =============================================================================
# Club trek
# =============================================================================


@router.post("/{club_id}/start-trek", response_model=ClubTrekActionResponse)
async def start_club_trek(
    club_id: UUID,
    payload: ClubTrekRequest,
    user: CurrentUser,
    db: DbSession,
) -> ClubTrekActionResponse:
    """Leader tags their active trek as the club trek."""
    try:
        started = await ClubTrekService(db).start(club_id, user.id, payload.trek_id)
    except ServiceError as e:
        raise http_error(e) from e

    await db.commit()
    await emit_to_club("club_trek_started", club_id, started)
    return ClubTrekActionResponse(message="Club trek started successfully", club_trek=started)


@router.get("/{club_id}/active-trek", response_model=ActiveClubTrekResponse)
async def get_active_club_trek(club_id: UUID, user: CurrentUser, db: DbSession) -> ActiveClubTrekResponse:
    try:
        return await ClubTrekService(db).active(club_id)
    except ServiceError as e:
        raise http_error(e) from e


@router.post("/{club_id}/join-trek", response_model=ClubTrekActionResponse)
async def join_club_trek(
    club_id: UUID,
    payload: ClubTrekRequest,
    user: CurrentUser,
    db: DbSession,
) -> ClubTrekActionResponse:
    try:
        joined = await ClubTrekService(db).join(club_id, user.id, payload.trek_id)
    except ServiceError as e:
        raise http_error(e) from e

    await db.commit()
    await emit_to_club(
        "club_trek_member_joined",
        club_id,
        {
            "clubId": str(club_id),
            "userId": str(user.id),
            "userName": user.display_name,
            "trekId": str(joined.trek_id),
        },
    )
    return ClubTrekActionResponse(message="Joined club trek successfully", club_trek=joined)


@router.get("/{club_id}/live-status", response_model=LiveStatusResponse)
async def get_live_status(club_id: UUID, user: CurrentUser, db: DbSession) -> LiveStatusResponse:
    try:
        return await ClubTrekService(db).live_status(club_id)
    except ServiceError as e:
        raise http_error(e) from e


@router.post("/{club_id}/analyze", response_model=GroupAnalysisResponse)
async def analyze_club_trek(club_id: UUID, user: CurrentUser, db: DbSession) -> GroupAnalysisResponse:
    """Leader-only group intelligence: classifications, alerts, suggestions."""
    try:
        return await ClubTrekService(db).analyze(club_id, user.id)
    except ServiceError as e:
        raise http_error(e) from e


@router.post("/{club_id}/stop-trek", response_model=StopClubTrekResponse)
async def stop_club_trek(club_id: UUID, user: CurrentUser, db: DbSession) -> StopClubTrekResponse:
    try:
        affected = await ClubTrekService(db).stop(club_id, user.id)
    except ServiceError as e:
        raise http_error(e) from e

    await db.commit()
    await emit_to_club(
        "club_trek_stopped",
        club_id,
        {"clubId": str(club_id), "affectedActivities": affected},
    )
    return StopClubTrekResponse(
        message="Club trek stopped. Members can continue individual treks.",
        affected_activities=affected,
    )
