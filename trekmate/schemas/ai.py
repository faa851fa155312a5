"""AI assistant and species identification schemas."""

from typing import Literal

from pydantic import Field

from trekmate.schemas.common import BaseSchema

SpeciesCategory = Literal[
    "plant", "animal", "insect", "reptile", "bird", "mammal", "fungus", "landmark", "unknown"
]
ConfidenceLabel = Literal["high", "medium", "low"]
DangerLevel = Literal["high", "medium", "low", "none"]


class ChatTurn(BaseSchema):
    role: Literal["user", "assistant"]
    content: str


class AssistantChatRequest(BaseSchema):
    message: str = Field(min_length=1, max_length=4000)
    history: list[ChatTurn] = Field(default_factory=list, max_length=40)


class AssistantChatResponse(BaseSchema):
    reply: str


class ItineraryRequest(BaseSchema):
    treks: list[str] = Field(min_length=1, max_length=20)
    start_date: str
    duration: int = Field(ge=1, le=90)


class ItineraryResponse(BaseSchema):
    itinerary: str


class DifficultyRequest(BaseSchema):
    description: str = Field(min_length=1, max_length=4000)


class DifficultyResponse(BaseSchema):
    estimation: str


class IdentifySpeciesRequest(BaseSchema):
    base64_image: str = Field(min_length=1)
    mime_type: str = "image/jpeg"


class SpeciesIdentification(BaseSchema):
    species: str = "unknown"
    category: SpeciesCategory = "unknown"
    confidence_score: float = 0.0
    confidence: ConfidenceLabel = "low"
    is_dangerous: bool = False
    danger_level: DangerLevel = "none"


class SpeciesDetailsRequest(BaseSchema):
    species_name: str = Field(min_length=1, max_length=255)


class SpeciesDetails(BaseSchema):
    scientific_name: str = ""
    common_names: list[str] = []
    description: str = ""
    habitat: str = ""
    distribution: str = ""
    behavior: str = ""
    diet: str = ""
    conservation: str = ""
    danger_info: str = ""
    interesting_facts: list[str] = []
    safety_tips: list[str] = []
    is_threatened: bool = False
    is_venomous: bool = False
    is_poisonous: bool = False
