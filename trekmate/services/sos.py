"""Emergency SOS: SMS to personal contacts and to trekkers nearby."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trekmate.core.config import settings
from trekmate.core.redis import get_sos_event, get_sos_event_key, store_sos_event
from trekmate.models.trek import Trek, TrekStatus
from trekmate.schemas.sos import (
    EmergencyContact,
    NearbyCheckResponse,
    NearbySOSResponse,
    NearbyTrekker,
    SendSOSRequest,
    SendSOSResponse,
    SmsDeliveryResult,
)
from trekmate.services.errors import ConflictError, ServiceUnavailableError
from trekmate.services.geo import format_distance, haversine_distance, maps_link
from trekmate.services.sms import SmsError, SmsGateway

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 30
TRIGGER_TEXT = {"fall": "Fall detected", "manual": "Manual SOS"}


def trigger_text(trigger_type: str) -> str:
    return TRIGGER_TEXT.get(trigger_type, TRIGGER_TEXT["manual"])


def compose_sos_message(
    trigger_type: str,
    latitude: float,
    longitude: float,
    time_text: str,
    user_name: str | None = None,
    max_length: int | None = None,
) -> str:
    """Build a single-segment SOS text.

    Plain ASCII and short so trial SMS accounts don't split it. When over
    ``max_length`` the name is dropped first, then the text is cut.
    """
    max_length = max_length or settings.sms_max_length
    parts = [
        f"SOS ALERT - {trigger_text(trigger_type)}",
        f"Loc:{maps_link(latitude, longitude)}",
        f"Time:{time_text}",
    ]
    name = (user_name or "").strip()[:MAX_NAME_LENGTH]
    if name:
        parts.append(f"Name:{name}")

    message = " | ".join(parts)
    if len(message) > max_length and name:
        message = " | ".join(parts[:-1])
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


def dedupe_contacts(contacts: Iterable[EmergencyContact]) -> list[EmergencyContact]:
    """Drop contacts without a phone and repeats of the same (trimmed) number."""
    seen: set[str] = set()
    unique = []
    for contact in contacts:
        phone = (contact.phone or "").strip()
        if not phone:
            logger.warning(f"Skipping emergency contact with no phone: {contact.name}")
            continue
        if phone in seen:
            continue
        seen.add(phone)
        unique.append(EmergencyContact(name=contact.name, phone=phone))
    return unique


def _short_time(ts: datetime | None = None) -> str:
    return (ts or datetime.now(UTC)).strftime("%H:%M UTC")


async def _deliver(gateway: SmsGateway, contact: EmergencyContact, body: str) -> SmsDeliveryResult:
    try:
        sent = await gateway.send(contact.phone, body)
    except SmsError as e:
        logger.error(f"Failed to send SOS SMS to {contact.name} ({contact.phone}): {e}")
        return SmsDeliveryResult(
            success=False,
            contact=contact.name,
            phone=contact.phone,
            error=str(e),
            code=e.code,
        )
    return SmsDeliveryResult(
        success=True,
        contact=contact.name,
        phone=contact.phone,
        sid=sent.sid,
        status=sent.status,
    )


async def send_sos(request: SendSOSRequest, gateway: SmsGateway | None) -> SendSOSResponse:
    """Text every emergency contact at once.

    ``success`` is true when at least one message was accepted.
    """
    if not request.emergency_contacts:
        raise ConflictError("No emergency contacts provided")
    if request.latitude is None or request.longitude is None:
        raise ConflictError("Location coordinates required")
    if gateway is None:
        raise ServiceUnavailableError("SMS service not configured on server")

    contacts = dedupe_contacts(request.emergency_contacts)
    if not contacts:
        raise ConflictError("No valid phone numbers in emergency contacts")

    body = compose_sos_message(
        request.trigger_type,
        request.latitude,
        request.longitude,
        request.timestamp or _short_time(),
        request.user_name,
    )
    results = list(await asyncio.gather(*(_deliver(gateway, c, body) for c in contacts)))

    sent = sum(1 for r in results if r.success)
    failed = len(results) - sent
    logger.info(f"SOS delivery report ({request.trigger_type}): {sent} sent, {failed} failed")

    if sent:
        return SendSOSResponse(
            success=True,
            message=f"SOS sent successfully to {sent} of {len(results)} contact(s)",
            sent=sent,
            failed=failed,
            results=results,
        )
    return SendSOSResponse(
        success=False,
        error=f"Failed to send SMS to all {len(results)} contact(s)",
        failed=failed,
        results=results,
    )


# =============================================================================
# Nearby trekkers
# =============================================================================


async def find_nearby_treks(
    db: AsyncSession,
    latitude: float,
    longitude: float,
    radius_m: float,
    exclude_user_id: UUID | None = None,
    now: datetime | None = None,
) -> list[tuple[Trek, float]]:
    """Active treks of other users with a fresh fix inside the radius, nearest first."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(seconds=settings.nearby_location_max_age_sec)
    query = select(Trek).where(
        Trek.status == TrekStatus.ACTIVE.value,
        Trek.last_point_at.is_not(None),
        Trek.last_point_at >= cutoff,
    )
    if exclude_user_id is not None:
        query = query.where(Trek.user_id != exclude_user_id)
    result = await db.execute(query)

    nearby = []
    for trek in result.unique().scalars().all():
        distance = haversine_distance(latitude, longitude, trek.last_latitude, trek.last_longitude)
        if distance <= radius_m:
            nearby.append((trek, distance))
    nearby.sort(key=lambda pair: pair[1])
    return nearby


def compose_nearby_message(reason: str, distance_m: float, latitude: float, longitude: float, ts: datetime) -> str:
    return (
        "SOS ALERT - Nearby Trekker\n"
        f"{trigger_text(reason)} near your location.\n"
        "Someone may need help.\n"
        f"Distance: ~{format_distance(distance_m)}\n"
        f"Location: {maps_link(latitude, longitude)}\n"
        f"Time: {_short_time(ts)}"
    )


async def notify_nearby(
    db: AsyncSession,
    gateway: SmsGateway | None,
    sos_user_id: UUID,
    latitude: float | None,
    longitude: float | None,
    timestamp: datetime | None = None,
    reason: str = "manual",
) -> NearbySOSResponse:
    """Text trekkers close to an SOS, once per (user, event timestamp)."""
    if latitude is None or longitude is None:
        raise ConflictError("latitude and longitude are required")

    event_ts = timestamp or datetime.now(UTC)
    event_key = get_sos_event_key(str(sos_user_id), int(event_ts.timestamp() * 1000))
    try:
        already = await get_sos_event(event_key)
    except RedisError as e:
        # De-duplication is best effort
        logger.warning(f"SOS de-duplication unavailable, continuing: {e}")
        already = None
    if already is not None:
        logger.info(f"Duplicate SOS event {event_key}, skipping nearby notifications")
        return NearbySOSResponse(
            message="Already notified nearby trekkers for this event",
            notified_count=len(already),
        )

    nearby = await find_nearby_treks(
        db, latitude, longitude, settings.nearby_radius_m, exclude_user_id=sos_user_id
    )
    if not nearby:
        return NearbySOSResponse(message="No nearby trekkers found")

    if gateway is None:
        logger.warning(f"Twilio not configured; {len(nearby)} nearby trekkers not notified")

    async def _notify(trek: Trek, distance: float) -> str | None:
        phone = (trek.user.phone_number or "").strip()
        if not phone or gateway is None:
            return None
        body = compose_nearby_message(reason, distance, latitude, longitude, event_ts)
        try:
            await gateway.send(phone, body)
        except SmsError as e:
            logger.error(f"Failed to send nearby SOS to user {trek.user_id}: {e}")
            return None
        return str(trek.user_id)

    outcomes = await asyncio.gather(*(_notify(trek, d) for trek, d in nearby))
    notified = [user_id for user_id in outcomes if user_id]
    failed = len(nearby) - len(notified)

    try:
        await store_sos_event(event_key, notified)
    except RedisError as e:
        logger.warning(f"Could not record SOS event {event_key}: {e}")

    logger.info(
        f"Nearby SOS for {sos_user_id}: {len(nearby)} nearby, {len(notified)} notified, {failed} failed"
    )
    return NearbySOSResponse(
        message=f"Notified {len(notified)} nearby trekkers",
        notified_count=len(notified),
        failed_count=failed,
        nearby_users_found=len(nearby),
    )


async def check_nearby(
    db: AsyncSession,
    latitude: float,
    longitude: float,
    radius_m: float,
    exclude_user_id: UUID | None = None,
) -> NearbyCheckResponse:
    now = datetime.now(UTC)
    nearby = await find_nearby_treks(db, latitude, longitude, radius_m, exclude_user_id, now=now)
    trekkers = [
        NearbyTrekker(
            user_id=trek.user_id,
            email=trek.user.email,
            distance=format_distance(distance),
            distance_meters=round(distance),
            last_location_time=trek.last_point_at,
            location_age=f"{round((now - trek.last_point_at).total_seconds())}s",
        )
        for trek, distance in nearby
    ]
    return NearbyCheckResponse(
        nearby_count=len(trekkers),
        radius=format_distance(radius_m),
        nearby_users=trekkers,
    )
