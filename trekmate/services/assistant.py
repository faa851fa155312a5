"""Trek assistant: chat, itinerary planning and difficulty estimates."""

import logging
from collections.abc import Sequence

from trekmate.schemas.ai import ChatTurn
from trekmate.services.errors import ServiceUnavailableError
from trekmate.services.llm_gateway import LLMError, LLMGateway

logger = logging.getLogger(__name__)

ASSISTANT_PERSONA = "You are Trekky AI, a helpful trekking assistant. Keep answers concise and helpful."


def build_chat_messages(message: str, history: Sequence[ChatTurn]) -> list[dict]:
    messages = [{"role": "system", "content": ASSISTANT_PERSONA}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in history)
    messages.append({"role": "user", "content": message})
    return messages


async def _ask(llm: LLMGateway, call, what: str) -> str:
    try:
        result = await call
    except LLMError as e:
        logger.error(f"Assistant {what} failed: {e}")
        raise ServiceUnavailableError(f"{what.capitalize()} failed") from e
    return result["content"].strip()


async def chat(llm: LLMGateway, message: str, history: Sequence[ChatTurn] = ()) -> str:
    return await _ask(llm, llm.chat(build_chat_messages(message, history)), "chat")


async def optimize_itinerary(
    llm: LLMGateway,
    treks: Sequence[str],
    start_date: str,
    duration: int,
) -> str:
    prompt = (
        f"I want to do these treks: {', '.join(treks)} starting {start_date} for {duration} days. "
        "Suggest an optimized itinerary order with rest days."
    )
    return await _ask(
        llm,
        llm.complete(prompt, system_prompt="You are a logistics expert."),
        "itinerary optimization",
    )


async def estimate_difficulty(llm: LLMGateway, description: str) -> str:
    prompt = (
        "Estimate the difficulty (Easy, Moderate, Difficult) and give 1 tip for a trek "
        f'described as: "{description}". Return format: "Difficulty: [Level]. Tip: [Tip]"'
    )
    return await _ask(
        llm,
        llm.complete(prompt, system_prompt="You are a mountaineering expert."),
        "difficulty estimation",
    )
