"""LLM Gateway - Unified interface using LiteLLM.

LiteLLM translates every provider to the OpenAI chat format, so the trek
assistant and the species identifier share one code path whichever model
is configured. Fallback models are used only when their API key is set.

LiteLLM is imported lazily; it starts aiohttp machinery at import time.
"""

import logging
import os
from typing import Any

from trekmate.core.config import settings

logger = logging.getLogger(__name__)

# Module-level flag to track if litellm is initialized
_litellm_initialized = False


def _ensure_litellm():
    """Lazy initialize LiteLLM on first use."""
    global _litellm_initialized
    if _litellm_initialized:
        return

    import litellm

    if settings.debug:
        os.environ["LITELLM_LOG"] = "DEBUG"

    litellm.drop_params = True  # Drop unsupported params instead of error

    # LiteLLM's logging callbacks run async workers that time out noisily
    litellm.success_callback = []
    litellm.failure_callback = []

    _litellm_initialized = True
    logger.debug("LiteLLM initialized")


class LLMError(Exception):
    """LLM Gateway error."""
    pass


class LLMGateway:
    """
    Unified LLM Gateway using LiteLLM.

    Model naming convention:
    - gemini/gemini-2.5-flash
    - openai/gpt-4o-mini
    """

    DEFAULT_MODELS = {
        "chat": settings.default_chat_model,
        "vision": settings.default_vision_model,
    }

    # Tried in order when the primary model fails
    FALLBACK_MODELS = [
        "gemini/gemini-2.5-flash",
        "openai/gpt-4o-mini",
    ]

    # Mapping of model prefixes to environment variable names
    _MODEL_KEY_MAPPING = {
        "openai/": "OPENAI_API_KEY",
        "gemini/": "GEMINI_API_KEY",
    }

    def __init__(self):
        """Initialize LLM Gateway with configured API keys."""
        self._setup_api_keys()

    def _setup_api_keys(self):
        if settings.gemini_api_key:
            os.environ["GEMINI_API_KEY"] = settings.gemini_api_key
        if settings.openai_api_key:
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key

    @property
    def configured(self) -> bool:
        return any(os.environ.get(key) for key in self._MODEL_KEY_MAPPING.values())

    def _get_available_fallbacks(self, exclude_model: str) -> list[str]:
        """Fallback models, excluding the primary, whose API keys are set."""
        available = []
        for model in self.FALLBACK_MODELS:
            if model == exclude_model:
                continue
            for prefix, env_key in self._MODEL_KEY_MAPPING.items():
                if model.startswith(prefix):
                    if os.environ.get(env_key):
                        available.append(model)
                    break
        return available

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        system_prompt: str | None = None,
        response_format: dict | None = None,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Generate a completion for a single prompt.

        Returns:
            dict with content, model and usage
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return await self.chat(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
            **kwargs,
        )

    async def describe_image(
        self,
        prompt: str,
        base64_image: str,
        mime_type: str = "image/jpeg",
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 2048,
    ) -> dict[str, Any]:
        """Send one image plus instructions to a vision-capable model."""
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{base64_image}"},
                    },
                ],
            }
        ]
        return await self.chat(
            messages=messages,
            model=model or self.DEFAULT_MODELS["vision"],
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        response_format: dict | None = None,
        fallback: bool = True,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Send chat messages with automatic fallback.

        Args:
            messages: List of message dicts with role and content
            model: Model name with provider prefix
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            response_format: Optional response format (e.g., {"type": "json_object"})
            fallback: Enable automatic fallback to other models

        Returns:
            Dict with content, model and usage stats
        """
        if not self.configured:
            raise LLMError("No LLM provider configured")

        _ensure_litellm()
        from litellm import acompletion

        model = model or self.DEFAULT_MODELS["chat"]

        params = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **kwargs,
        }

        if response_format:
            params["response_format"] = response_format

        if fallback:
            available_fallbacks = self._get_available_fallbacks(model)
            if available_fallbacks:
                params["fallbacks"] = available_fallbacks

        try:
            response = await acompletion(**params)
        except Exception as e:
            logger.error(f"LLM completion failed: {e}")
            raise LLMError(f"All models failed: {str(e)}") from e

        usage = getattr(response, "usage", None)
        return {
            "content": response.choices[0].message.content or "",
            "model": response.model,
            "usage": {
                "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
                "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
                "total_tokens": getattr(usage, "total_tokens", 0) or 0,
            },
        }


# Singleton instance
_llm_gateway: LLMGateway | None = None


def get_llm_gateway() -> LLMGateway:
    """Get or create LLM Gateway singleton."""
    global _llm_gateway
    if _llm_gateway is None:
        _llm_gateway = LLMGateway()
    return _llm_gateway
