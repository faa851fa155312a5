"""AI assistant and species identification endpoints."""

from fastapi import APIRouter, Request

from trekmate.api.deps import LLM, CurrentUser, http_error
from trekmate.core.config import settings
from trekmate.core.rate_limit import enforce_rate_limit
from trekmate.schemas.ai import (
    AssistantChatRequest,
    AssistantChatResponse,
    DifficultyRequest,
    DifficultyResponse,
    IdentifySpeciesRequest,
    ItineraryRequest,
    ItineraryResponse,
    SpeciesDetails,
    SpeciesDetailsRequest,
    SpeciesIdentification,
)
from trekmate.services import assistant, species
from trekmate.services.errors import ServiceError

router = APIRouter()


def _limit(request: Request, user_id, scope: str) -> None:
    enforce_rate_limit(
        request,
        user_id=str(user_id),
        limit_per_minute=settings.ai_rate_limit_per_minute,
        scope=f"ai:{scope}",
    )


@router.post("/chat", response_model=AssistantChatResponse)
async def chat(
    payload: AssistantChatRequest,
    user: CurrentUser,
    llm: LLM,
    request: Request,
) -> AssistantChatResponse:
    _limit(request, user.id, "chat")
    try:
        reply = await assistant.chat(llm, payload.message, payload.history)
    except ServiceError as e:
        raise http_error(e) from e
    return AssistantChatResponse(reply=reply)


@router.post("/optimize", response_model=ItineraryResponse)
async def optimize_itinerary(
    payload: ItineraryRequest,
    user: CurrentUser,
    llm: LLM,
    request: Request,
) -> ItineraryResponse:
    _limit(request, user.id, "optimize")
    try:
        itinerary = await assistant.optimize_itinerary(
            llm, payload.treks, payload.start_date, payload.duration
        )
    except ServiceError as e:
        raise http_error(e) from e
    return ItineraryResponse(itinerary=itinerary)


@router.post("/estimate", response_model=DifficultyResponse)
async def estimate_difficulty(
    payload: DifficultyRequest,
    user: CurrentUser,
    llm: LLM,
    request: Request,
) -> DifficultyResponse:
    _limit(request, user.id, "estimate")
    try:
        estimation = await assistant.estimate_difficulty(llm, payload.description)
    except ServiceError as e:
        raise http_error(e) from e
    return DifficultyResponse(estimation=estimation)


@router.post("/identify-species", response_model=SpeciesIdentification)
async def identify_species(
    payload: IdentifySpeciesRequest,
    user: CurrentUser,
    llm: LLM,
    request: Request,
) -> SpeciesIdentification:
    _limit(request, user.id, "identify")
    try:
        return await species.identify_species(llm, payload.base64_image, payload.mime_type)
    except ServiceError as e:
        raise http_error(e) from e


@router.post("/species-details", response_model=SpeciesDetails)
async def get_species_details(
    payload: SpeciesDetailsRequest,
    user: CurrentUser,
    llm: LLM,
    request: Request,
) -> SpeciesDetails:
    _limit(request, user.id, "details")
    try:
        return await species.species_details(llm, payload.species_name)
    except ServiceError as e:
        raise http_error(e) from e
