"""Emergency SOS endpoints."""

from fastapi import APIRouter, Query, Request, Response, status

from trekmate.api.deps import CurrentUser, DbSession, Sms, http_error
from trekmate.core.config import settings
from trekmate.core.rate_limit import enforce_rate_limit
from trekmate.schemas.sos import (
    NearbyCheckResponse,
    NearbySOSRequest,
    NearbySOSResponse,
    SendSOSRequest,
    SendSOSResponse,
)
from trekmate.services import sos
from trekmate.services.errors import ServiceError

router = APIRouter()


@router.post("/emergency/send-sos", response_model=SendSOSResponse)
async def send_sos(
    payload: SendSOSRequest,
    user: CurrentUser,
    sms: Sms,
    request: Request,
    response: Response,
) -> SendSOSResponse:
    """Text the caller's emergency contacts with their location."""
    enforce_rate_limit(
        request,
        user_id=str(user.id),
        limit_per_minute=settings.sos_rate_limit_per_minute,
        scope="sos:send",
    )
    if not payload.user_name:
        payload.user_name = user.full_name

    try:
        result = await sos.send_sos(payload, sms)
    except ServiceError as e:
        raise http_error(e) from e

    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return result


@router.post("/sos/nearby", response_model=NearbySOSResponse)
async def notify_nearby_trekkers(
    payload: NearbySOSRequest,
    user: CurrentUser,
    db: DbSession,
    sms: Sms,
    request: Request,
) -> NearbySOSResponse:
    """Alert other trekkers within range of the caller's SOS."""
    enforce_rate_limit(
        request,
        user_id=str(user.id),
        limit_per_minute=settings.sos_rate_limit_per_minute,
        scope="sos:nearby",
    )
    try:
        return await sos.notify_nearby(
            db,
            sms,
            sos_user_id=user.id,
            latitude=payload.latitude,
            longitude=payload.longitude,
            timestamp=payload.timestamp,
            reason=payload.reason,
        )
    except ServiceError as e:
        raise http_error(e) from e


@router.get("/sos/nearby/check", response_model=NearbyCheckResponse)
async def check_nearby_trekkers(
    user: CurrentUser,
    db: DbSession,
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: int = Query(1000, ge=1, le=50_000),
) -> NearbyCheckResponse:
    """List trekkers who would be alerted, without sending anything."""
    return await sos.check_nearby(db, latitude, longitude, radius, exclude_user_id=user.id)
