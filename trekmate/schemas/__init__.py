"""Pydantic schemas for request/response validation."""

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
from trekmate.schemas.auth import (
    AuthResponse,
    FirebaseTokenExchange,
    UserInfo,
)
from trekmate.schemas.club import (
    ClubCreate,
    ClubMembershipResponse,
    ClubMessageResponse,
    ClubResponse,
)
from trekmate.schemas.club_trek import (
    ActiveClubTrekResponse,
    ClubTrekRequest,
    GroupAnalysisResponse,
    LiveStatusResponse,
    StopClubTrekResponse,
)
from trekmate.schemas.sos import (
    NearbyCheckResponse,
    NearbySOSRequest,
    NearbySOSResponse,
    SendSOSRequest,
    SendSOSResponse,
)
from trekmate.schemas.trek import (
    LocationBatch,
    LocationPoint,
    MetricsSnapshot,
    TrekComplete,
    TrekResponse,
    TrekStart,
    TrekSummary,
)
from trekmate.schemas.user import (
    UserResponse,
    UserUpdate,
)

__all__ = [
    # Auth
    "FirebaseTokenExchange",
    "UserInfo",
    "AuthResponse",
    # User
    "UserResponse",
    "UserUpdate",
    # Trek
    "TrekStart",
    "LocationPoint",
    "LocationBatch",
    "MetricsSnapshot",
    "TrekComplete",
    "TrekSummary",
    "TrekResponse",
    # Club
    "ClubCreate",
    "ClubResponse",
    "ClubMembershipResponse",
    "ClubMessageResponse",
    # Club trek
    "ClubTrekRequest",
    "ActiveClubTrekResponse",
    "LiveStatusResponse",
    "StopClubTrekResponse",
    "GroupAnalysisResponse",
    # SOS
    "SendSOSRequest",
    "SendSOSResponse",
    "NearbySOSRequest",
    "NearbySOSResponse",
    "NearbyCheckResponse",
    # AI
    "AssistantChatRequest",
    "AssistantChatResponse",
    "ItineraryRequest",
    "ItineraryResponse",
    "DifficultyRequest",
    "DifficultyResponse",
    "IdentifySpeciesRequest",
    "SpeciesIdentification",
    "SpeciesDetailsRequest",
    "SpeciesDetails",
]
