"""
Mock fallback pipeline.

Used whenever the real speech pipeline cannot serve a request. Every method is
fail-safe: a sample question is always available, advice degrades to a fixed
localized template, and audio is a silent WAV placeholder.
"""

from __future__ import annotations

import random
from typing import Optional

import structlog

from src.farmvoice.audio import silence_wav
from src.farmvoice.language import DEFAULT_LANGUAGE, get_rules
from src.farmvoice.llm import GenerationBackend
from src.farmvoice.prompt import PromptBuilder
from src.farmvoice.voice_types import VoiceContext

logger = structlog.get_logger(__name__)

PLACEHOLDER_AUDIO: bytes = silence_wav()
PLACEHOLDER_MIME_TYPE = "audio/wav"

_LAST_RESORT_QUERY = "How can I improve my crop yield?"


class MockFallbackEngine:
    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        rng: Optional[random.Random] = None,
    ):
        self._backend = backend
        self._prompts = prompt_builder or PromptBuilder()
        self._rng = rng or random.Random()

    def generate_query(self, language_tag: Optional[str]) -> str:
        """A realistic farmer question in the requested language."""
        pool = [q for q in get_rules(language_tag).sample_queries if q.strip()]
        if not pool:
            pool = [q for q in get_rules(DEFAULT_LANGUAGE).sample_queries if q.strip()]
        if not pool:
            return _LAST_RESORT_QUERY

        query = self._rng.choice(pool)
        logger.info("Mock query selected", language=language_tag, query=query)
        return query

    def fallback_advisory(self, language_tag: Optional[str]) -> str:
        return get_rules(language_tag).fallback_advisory

    def demo_advisory(self, language_tag: Optional[str]) -> str:
        """Template used while the speech services are known to be down."""
        return get_rules(language_tag).demo_message

    def error_advisory(self, language_tag: Optional[str]) -> str:
        return get_rules(language_tag).error_message

    async def generate_advisory(
        self,
        query: str,
        context: Optional[VoiceContext],
        language_tag: Optional[str],
        template: Optional[str] = None,
    ) -> str:
        """
        Try the generative backend with a mock-flavoured prompt.

        Falls back to `template` (or the localized fallback advisory) on any
        failure; never raises.
        """
        if self._backend is not None:
            try:
                prompt = self._prompts.build_mock(query, context, language_tag or DEFAULT_LANGUAGE.value)
                text = await self._backend.generate(prompt)
                if text and text.strip():
                    return text
                logger.warning("Mock advisory generation returned empty text")
            except Exception as e:
                logger.warning("Mock advisory generation failed", error=str(e))

        return template or self.fallback_advisory(language_tag)

    def generate_audio(self, text: str, language_tag: Optional[str] = None) -> bytes:
        """Silent placeholder audio. Never calls a provider."""
        return PLACEHOLDER_AUDIO
