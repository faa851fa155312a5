"""Trek tracking endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from trekmate.api.deps import CurrentUser, DbSession, http_error
from trekmate.models.trek import Trek, TrekStatus
from trekmate.schemas.trek import (
    LastLocation,
    LocationBatch,
    MetricsSnapshot,
    TrekComplete,
    TrekResponse,
    TrekStart,
    TrekSummary,
)
from trekmate.services.errors import ServiceError
from trekmate.services.trek_tracking import TrekService

router = APIRouter()


def trek_to_response(trek: Trek) -> TrekResponse:
    last_location = None
    if trek.has_location:
        last_location = LastLocation(
            latitude=trek.last_latitude,
            longitude=trek.last_longitude,
            timestamp=trek.last_point_at,
        )
    return TrekResponse(
        id=trek.id,
        user_id=trek.user_id,
        club_id=trek.club_id,
        title=trek.title,
        status=TrekStatus(trek.status),
        start_time=trek.start_time,
        end_time=trek.end_time,
        duration_seconds=trek.duration_seconds or 0,
        point_count=trek.point_count or 0,
        last_location=last_location,
        summary=TrekSummary.model_validate(trek.summary) if trek.summary else None,
        notes=trek.notes,
    )


async def _owned(db, trek_id: UUID, user_id: UUID) -> Trek:
    try:
        return await TrekService(db).get_owned(trek_id, user_id)
    except ServiceError as e:
        raise http_error(e) from e


@router.post("/start", response_model=TrekResponse, status_code=status.HTTP_201_CREATED)
async def start_trek(payload: TrekStart, user: CurrentUser, db: DbSession) -> TrekResponse:
    trek = await TrekService(db).start(user.id, payload.title, payload.start_time)
    return trek_to_response(trek)


@router.get("", response_model=list[TrekResponse])
async def list_treks(
    user: CurrentUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[TrekResponse]:
    treks = await TrekService(db).list_for_user(user.id, limit=limit)
    return [trek_to_response(t) for t in treks]


@router.get("/{trek_id}", response_model=TrekResponse)
async def get_trek(trek_id: UUID, user: CurrentUser, db: DbSession) -> TrekResponse:
    return trek_to_response(await _owned(db, trek_id, user.id))


@router.post("/{trek_id}/location", response_model=TrekResponse)
async def add_locations(
    trek_id: UUID,
    payload: LocationBatch,
    user: CurrentUser,
    db: DbSession,
) -> TrekResponse:
    """Append a batch of GPS fixes (clients flush their offline buffer here)."""
    trek = await _owned(db, trek_id, user.id)
    try:
        trek = await TrekService(db).add_locations(trek, payload.points)
    except ServiceError as e:
        raise http_error(e) from e
    return trek_to_response(trek)


@router.post("/{trek_id}/metrics", response_model=TrekResponse)
async def add_metrics(
    trek_id: UUID,
    payload: MetricsSnapshot,
    user: CurrentUser,
    db: DbSession,
) -> TrekResponse:
    trek = await _owned(db, trek_id, user.id)
    try:
        trek = await TrekService(db).add_metrics(trek, payload)
    except ServiceError as e:
        raise http_error(e) from e
    return trek_to_response(trek)


@router.post("/{trek_id}/pause", response_model=TrekResponse)
async def pause_trek(trek_id: UUID, user: CurrentUser, db: DbSession) -> TrekResponse:
    trek = await _owned(db, trek_id, user.id)
    try:
        trek = await TrekService(db).transition(trek, TrekStatus.PAUSED)
    except ServiceError as e:
        raise http_error(e) from e
    return trek_to_response(trek)


@router.post("/{trek_id}/resume", response_model=TrekResponse)
async def resume_trek(trek_id: UUID, user: CurrentUser, db: DbSession) -> TrekResponse:
    trek = await _owned(db, trek_id, user.id)
    try:
        trek = await TrekService(db).transition(trek, TrekStatus.ACTIVE)
    except ServiceError as e:
        raise http_error(e) from e
    return trek_to_response(trek)


@router.post("/{trek_id}/complete", response_model=TrekResponse)
async def complete_trek(
    trek_id: UUID,
    user: CurrentUser,
    db: DbSession,
    payload: TrekComplete | None = None,
) -> TrekResponse:
    trek = await _owned(db, trek_id, user.id)
    payload = payload or TrekComplete()
    try:
        trek = await TrekService(db).complete(trek, notes=payload.notes, end_time=payload.end_time)
    except ServiceError as e:
        raise http_error(e) from e
    return trek_to_response(trek)
