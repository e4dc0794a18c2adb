"""
Generative text backend (OpenAI-compatible API).

Provides:
- A minimal `generate(prompt_text) -> str` contract used by the pipeline
- Groq (default) or OpenAI chat completions
- Startup model validation over HTTP
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import time

import httpx
import structlog
from openai import AsyncOpenAI

from src.farmvoice.config import get_config
from src.farmvoice.errors import GenerationFailed

logger = structlog.get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"


class GenerationBackend(ABC):
    """Anything that turns a prompt into advisory text."""

    @abstractmethod
    async def generate(self, prompt_text: str) -> str:
        """Return generated text. Raises GenerationFailed on any failure."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


async def validate_model(api_key: str, model_name: str, base_url: str = GROQ_BASE_URL) -> bool:
    """
    Check that the configured model exists.

    Calls GET {base_url}/models. Unlike a hard startup failure this only logs:
    the assistant keeps serving through its fallback path when generation is down.

    Returns:
        True if the model is listed
    """
    logger.info("Validating LLM model", model=model_name, base_url=base_url)

    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(
                f"{base_url}/models",
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=10.0,
            )
        except httpx.RequestError as e:
            logger.error("Failed to connect to LLM API", error=str(e))
            return False

    if response.status_code != 200:
        logger.error(
            "Failed to fetch LLM models",
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    models = response.json().get("data", [])
    model_ids = [m.get("id") for m in models]

    if model_name not in model_ids:
        logger.error(
            "LLM model not found",
            requested_model=model_name,
            available_models=", ".join(sorted(i for i in model_ids if i)[:10]),
        )
        return False

    logger.info("LLM model validated successfully", model=model_name)
    return True


class OpenAICompatibleBackend(GenerationBackend):
    """
    Chat-completions backend for Groq or OpenAI.

    The prompt already carries persona, context and history, so it is sent as
    a single user message.
    """

    def __init__(self, config: Optional[Any] = None, client: Optional[Any] = None):
        if config is None:
            config = get_config()

        self.config = config
        provider = (config.llm_provider or "groq").strip().lower()
        if provider == "openai":
            self.model = config.openai_model
            self.api_key = config.openai_api_key
            self.base_url = OPENAI_BASE_URL
        else:
            self.model = config.groq_model
            self.api_key = config.groq_api_key
            self.base_url = GROQ_BASE_URL

        self._client = client or AsyncOpenAI(api_key=self.api_key or "missing", base_url=self.base_url)

    async def validate_model(self) -> bool:
        return await validate_model(self.api_key, self.model, self.base_url)

    async def generate(self, prompt_text: str) -> str:
        start_time = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt_text}],
                max_tokens=self.config.llm_max_tokens,
                temperature=self.config.llm_temperature,
            )
        except Exception as e:
            logger.error("LLM generation failed", error=str(e), model=self.model)
            raise GenerationFailed(f"Generation failed: {e}") from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""

        if not text.strip():
            logger.warning("LLM returned empty response", model=self.model)
            raise GenerationFailed("Generation returned no text")

        logger.info(
            "LLM response generated",
            model=self.model,
            chars=len(text),
            total_ms=round((time.time() - start_time) * 1000, 1),
        )
        return text

    async def close(self) -> None:
        await self._client.close()
