"""Wildlife and plant identification from trek photos.

Vision models are asked for strict JSON but routinely wrap it in fences,
prepend prose or leave trailing commas, so the reply goes through a
tolerant parse followed by field normalisation.
"""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from trekmate.schemas.ai import SpeciesDetails, SpeciesIdentification
from trekmate.services.errors import ServiceError, ServiceUnavailableError
from trekmate.services.llm_gateway import LLMError, LLMGateway

logger = logging.getLogger(__name__)

ALLOWED_CATEGORIES = frozenset(
    {"plant", "animal", "insect", "reptile", "bird", "mammal", "fungus", "landmark", "unknown"}
)
DANGER_LEVELS = frozenset({"high", "medium", "low", "none"})
LABEL_SCORES = {"high": 0.9, "medium": 0.6, "low": 0.3}
TRUTHY_STRINGS = frozenset({"true", "yes", "y"})

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_PERCENT_RE = re.compile(r"([0-9]{1,3}(?:\.[0-9]+)?)\s*%")
_NUMBER_RE = re.compile(r"^[0-9]+(?:\.[0-9]+)?$")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_SINGLE_QUOTED_RE = re.compile(r"'([^'\\]*)'")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_]\w*)\s*:")

IDENTIFY_PROMPT = """You are an expert wildlife and plant identification assistant for trekkers and hikers.

Analyze this image carefully and identify any visible plant, animal, insect, bird, reptile, mammal, fungus, or landmark.

Respond ONLY with a valid JSON object (no markdown, no backticks, no additional text) using this schema:

{
  "species": "Common Name (Scientific Name)",
  "category": "plant|animal|insect|reptile|bird|mammal|fungus|landmark|unknown",
  "confidenceScore": 0.0,
  "confidence": "high|medium|low",
  "isDangerous": true,
  "dangerLevel": "high|medium|low|none"
}

confidenceScore is a number between 0 and 1. If you cannot identify the subject, set species to "unknown"
and confidenceScore below 0.2. For dangerous species set isDangerous to true and choose a dangerLevel."""

DETAILS_PROMPT = """Provide detailed, accurate information about this species: "{name}"

Respond ONLY with a valid JSON object (no markdown, no backticks, no additional text):

{{
  "scientificName": "scientific name if known",
  "commonNames": ["common names in different regions"],
  "description": "physical description and key identifying features",
  "habitat": "typical habitat and environmental preferences",
  "distribution": "geographical distribution",
  "behavior": "behavioral characteristics and activity patterns",
  "diet": "diet for animals OR growing conditions for plants",
  "conservation": "conservation status (IUCN if applicable) and threats",
  "dangerInfo": "level of danger, what makes it dangerous, symptoms of envenomation or poisoning",
  "interestingFacts": ["3-5 interesting facts"],
  "safetyTips": ["3-5 safety tips for trekkers encountering this species"],
  "isThreatened": false,
  "isVenomous": false,
  "isPoisonous": false
}}

If certain information is not applicable, use empty strings or arrays."""


class AIResponseError(ServiceError):
    """The model answered but the answer was unusable."""

    status_code = 502

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message)


# =============================================================================
# Parsing
# =============================================================================


def extract_json_text(text: str | None) -> str | None:
    """Strip markdown fences and surrounding prose, keeping the outermost object."""
    if not text or not isinstance(text, str):
        return None
    clean = _FENCE_RE.sub("", text).strip()
    first = clean.find("{")
    last = clean.rfind("}")
    if first != -1 and last > first:
        clean = clean[first : last + 1]
    return clean or None


def _repair_json(text: str) -> str:
    repaired = text.replace("\n", " ")
    repaired = _SINGLE_QUOTED_RE.sub(r'"\1"', repaired)
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    return _BARE_KEY_RE.sub(r'\1"\2":', repaired)


def parse_json_from_text(text: str | None) -> dict[str, Any]:
    """Parse a JSON object out of a model reply.

    Raises:
        ValueError: when no object can be recovered.
    """
    json_text = extract_json_text(text)
    if json_text is None:
        raise ValueError("No JSON-like content found")
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(_repair_json(json_text))
        except json.JSONDecodeError as e:
            raise ValueError("Failed to parse JSON from AI response") from e
    if not isinstance(parsed, dict):
        raise ValueError("AI response is not a JSON object")
    return parsed


# =============================================================================
# Normalisation
# =============================================================================


def confidence_score(value: Any) -> float:
    """Coerce a number, numeric string, percentage or label to 0..1."""
    score = 0.0
    if isinstance(value, bool):
        score = 0.0
    elif isinstance(value, int | float):
        score = float(value)
    elif isinstance(value, str):
        s = value.strip()
        pct = _PERCENT_RE.search(s)
        if pct:
            return max(0.0, min(1.0, float(pct.group(1)) / 100.0))
        if _NUMBER_RE.match(s):
            score = float(s)
        else:
            score = LABEL_SCORES.get(s.lower(), 0.0)

    if score != score:  # NaN
        return 0.0
    if score > 1:
        # Treat 1..100 as a percentage
        score = 1.0 if score > 100 else score / 100.0
    return max(0.0, min(1.0, score))


def confidence_label(score: float) -> str:
    if score >= 0.8:
        return "high"
    if score >= 0.5:
        return "medium"
    return "low"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def normalize_identification(raw: dict[str, Any]) -> SpeciesIdentification:
    category = str(raw.get("category") or "unknown").strip().lower()
    if category not in ALLOWED_CATEGORIES:
        category = "unknown"

    # Prefer the numeric score; the label is only a fallback
    conf = raw.get("confidenceScore")
    if conf is None:
        conf = raw.get("confidence")
    score = confidence_score(conf)

    is_dangerous = _as_bool(raw.get("isDangerous"))
    danger_level = raw.get("dangerLevel")
    if danger_level:
        danger_level = str(danger_level).strip().lower()
        if danger_level not in DANGER_LEVELS:
            danger_level = "none"
    else:
        danger_level = "medium" if is_dangerous else "none"

    return SpeciesIdentification(
        species=str(raw.get("species") or "unknown"),
        category=category,
        confidence_score=score,
        confidence=confidence_label(score),
        is_dangerous=is_dangerous,
        danger_level=danger_level,
    )


# =============================================================================
# Model calls
# =============================================================================


async def identify_species(
    llm: LLMGateway,
    base64_image: str,
    mime_type: str = "image/jpeg",
) -> SpeciesIdentification:
    try:
        result = await llm.describe_image(IDENTIFY_PROMPT, base64_image, mime_type=mime_type, max_tokens=500)
    except LLMError as e:
        raise ServiceUnavailableError("AI service temporarily unavailable") from e

    try:
        raw = parse_json_from_text(result["content"])
    except ValueError as e:
        logger.error(f"Unparseable identification from {result.get('model')}: {e}")
        raise AIResponseError() from e

    identification = normalize_identification(raw)
    logger.info(
        f"Identified {identification.species} ({identification.category}, "
        f"confidence {identification.confidence_score:.2f}, danger {identification.danger_level})"
    )
    return identification


async def species_details(llm: LLMGateway, species_name: str) -> SpeciesDetails:
    try:
        result = await llm.complete(
            DETAILS_PROMPT.format(name=species_name.strip()),
            temperature=0.3,
            max_tokens=2000,
        )
    except LLMError as e:
        raise ServiceUnavailableError("AI service temporarily unavailable") from e

    try:
        raw = parse_json_from_text(result["content"] or "{}")
    except ValueError as e:
        logger.error(f"Unparseable species details for {species_name!r}: {e}")
        raise AIResponseError() from e

    # Aliases on the schema accept the camelCase keys directly
    try:
        return SpeciesDetails.model_validate({k: v for k, v in raw.items() if v is not None})
    except ValidationError as e:
        logger.error(f"Malformed species details for {species_name!r}: {e}")
        raise AIResponseError() from e
