"""
Voice query orchestration.

Sequences transcription -> prompt -> generation -> shaping -> synthesis and
re-routes any failed stage to the mock pipeline:

    START -> CHECK_AVAILABILITY -> {PRIMARY, MOCK}_TRANSCRIBE
          -> {PRIMARY, MOCK}_GENERATE -> SHAPE
          -> {PRIMARY, MOCK}_SYNTHESIZE -> DONE

Each stage returns a StageResult instead of raising; the only exceptions that
reach the caller are ProcessingFailed (unusable input) and, when fallback for
it is disabled, UnsupportedAudio.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Iterable, Optional

import structlog

from src.farmvoice.availability import AvailabilityCache
from src.farmvoice.config import get_config
from src.farmvoice.errors import (
    FarmVoiceError,
    GenerationFailed,
    NoSpeechDetected,
    ProcessingFailed,
    ServiceUnavailable,
    SynthesisFailed,
    UnsupportedAudio,
)
from src.farmvoice.language import WordBudgets, parse_language_tag
from src.farmvoice.llm import GenerationBackend
from src.farmvoice.mock import PLACEHOLDER_MIME_TYPE, MockFallbackEngine
from src.farmvoice.prompt import PromptBuilder
from src.farmvoice.shaping import ResponseShaper
from src.farmvoice.speech import SpeechBridge
from src.farmvoice.voice_types import (
    AdvisoryResponse,
    AvailabilityStatus,
    FailureKind,
    SourcePath,
    StageResult,
    TranscriptionResult,
    VoiceContext,
    VoiceQueryOutcome,
)

logger = structlog.get_logger(__name__)


class PipelineState(str, Enum):
    START = "start"
    CHECK_AVAILABILITY = "check_availability"
    PRIMARY_TRANSCRIBE = "primary_transcribe"
    MOCK_TRANSCRIBE = "mock_transcribe"
    PRIMARY_GENERATE = "primary_generate"
    MOCK_GENERATE = "mock_generate"
    SHAPE = "shape"
    PRIMARY_SYNTHESIZE = "primary_synthesize"
    MOCK_SYNTHESIZE = "mock_synthesize"
    DONE = "done"


WARNINGS: dict[FailureKind, str] = {
    FailureKind.SERVICE_UNAVAILABLE: "Speech recognition service unavailable; answered in demo mode with a sample question.",
    FailureKind.NO_SPEECH_DETECTED: "No speech was detected in the recording; answered a sample question instead.",
    FailureKind.UNSUPPORTED_AUDIO: "The audio format was not accepted by speech recognition; answered a sample question instead.",
    FailureKind.UNEXPECTED: "Voice processing had issues; answered a sample question instead.",
    FailureKind.GENERATION_FAILED: "Advice generation failed; a fallback answer was used.",
    FailureKind.SYNTHESIS_FAILED: "Speech synthesis failed; placeholder audio was returned.",
}
DEMO_MODE_WARNING = "Speech services are unavailable; running in demo mode."
EMPTY_ADVICE_WARNING = "The generated answer was empty after cleanup; a fallback answer was used."

_FAILURE_KINDS: dict[type, FailureKind] = {
    UnsupportedAudio: FailureKind.UNSUPPORTED_AUDIO,
    ServiceUnavailable: FailureKind.SERVICE_UNAVAILABLE,
    NoSpeechDetected: FailureKind.NO_SPEECH_DETECTED,
    GenerationFailed: FailureKind.GENERATION_FAILED,
    SynthesisFailed: FailureKind.SYNTHESIS_FAILED,
}


def _failure_kind(exc: BaseException) -> FailureKind:
    for error_type, kind in _FAILURE_KINDS.items():
        if isinstance(exc, error_type):
            return kind
    return FailureKind.UNEXPECTED


class _RequestTrace:
    """Per-request bookkeeping: visited states, warnings and the sticky mock flag."""

    def __init__(self, language_tag: str):
        self.language_tag = language_tag
        self.states: list[PipelineState] = [PipelineState.START]
        self.warnings: list[str] = []
        self.mock = False

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)
        logger.debug("Pipeline state", state=state.value, language=self.language_tag)

    def fall_back(self, warning: str) -> None:
        self.mock = True
        if warning not in self.warnings:
            self.warnings.append(warning)

    @property
    def warning(self) -> Optional[str]:
        return "; ".join(self.warnings) if self.warnings else None


class VoiceOrchestrator:
    """
    Entry point of the voice core.

    Owns the availability cache; no other component reads or writes it.
    """

    def __init__(
        self,
        speech: SpeechBridge,
        backend: GenerationBackend,
        *,
        availability: Optional[AvailabilityCache] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        shaper: Optional[ResponseShaper] = None,
        mock: Optional[MockFallbackEngine] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        budgets = WordBudgets(
            default=self.config.default_word_budget,
            overrides=self.config.word_budgets,
        )
        self._speech = speech
        self._backend = backend
        self._availability = availability or AvailabilityCache()
        self._prompts = prompt_builder or PromptBuilder(
            budgets=budgets, max_history_turns=self.config.max_history_turns
        )
        self._shaper = shaper or ResponseShaper(budgets)
        self._mock = mock or MockFallbackEngine(backend=backend, prompt_builder=self._prompts)
        self._probe_lock = asyncio.Lock()

    @property
    def speech(self) -> SpeechBridge:
        return self._speech

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def _probe(self) -> bool:
        async with self._probe_lock:
            cached = self._availability.get()
            if cached is not None:
                return cached

            try:
                await self._speech.synthesize(
                    self.config.availability_probe_text, "en-IN"
                )
                available = True
            except FarmVoiceError as e:
                logger.warning("Speech availability probe failed", error=str(e))
                available = False

            self._availability.set(available)
            logger.info("Speech availability probed", is_available=available)
            return available

    async def check_availability(self) -> AvailabilityStatus:
        """Report whether the speech providers are usable, probing only when unknown."""
        if self._availability.is_known:
            available = self._availability.get()
        else:
            available = await self._probe()
        return AvailabilityStatus(
            is_available=available,
            checked_at=self._availability.checked_at or time.time(),
        )

    def reset_availability_cache(self) -> None:
        self._availability.reset()
        logger.info("Speech availability cache reset")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _transcribe_stage(
        self,
        audio_bytes: bytes,
        language_tag: str,
        encoding_hint: Optional[str],
        sample_rate: Optional[int],
    ) -> StageResult[TranscriptionResult]:
        try:
            result = await self._speech.transcribe(audio_bytes, language_tag, encoding_hint, sample_rate)
        except Exception as e:
            kind = _failure_kind(e)
            if kind is FailureKind.UNEXPECTED:
                logger.exception("Unexpected transcription error")
            return StageResult.failed(kind, str(e))

        # A provider that "succeeds" with nothing usable is treated like no speech.
        if result.is_empty or not result.text.strip():
            return StageResult.failed(FailureKind.NO_SPEECH_DETECTED, "empty transcription")
        return StageResult.success(result)

    async def _generate_stage(self, prompt_text: str) -> StageResult[str]:
        try:
            text = await self._backend.generate(prompt_text)
        except Exception as e:
            return StageResult.failed(_failure_kind(e), str(e))
        if not text or not text.strip():
            return StageResult.failed(FailureKind.GENERATION_FAILED, "empty generation")
        return StageResult.success(text)

    async def _synthesize_stage(self, text: str, language_tag: str) -> StageResult[bytes]:
        try:
            audio = await self._speech.synthesize(text, language_tag)
        except Exception as e:
            return StageResult.failed(_failure_kind(e), str(e))
        return StageResult.success(audio)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _validate_input(self, audio_bytes: Optional[bytes], language_tag: Optional[str]) -> str:
        if not audio_bytes:
            raise ProcessingFailed("No audio provided")
        tag = parse_language_tag(language_tag)
        if tag is None:
            raise ProcessingFailed(f"Unsupported language: {language_tag}")
        return tag.value

    async def process_voice_query(
        self,
        audio_bytes: bytes,
        language_tag: str,
        context: Optional[VoiceContext] = None,
        prior_turns: Optional[Iterable[Any]] = None,
        *,
        encoding_hint: Optional[str] = None,
        sample_rate: Optional[int] = None,
    ) -> VoiceQueryOutcome:
        """
        Answer a recorded farmer question.

        Always returns advisory text and audio; upstream failures are recorded
        in `warning` and mark the outcome as mock-sourced.

        Raises:
            ProcessingFailed: no audio, or an unsupported language tag
            UnsupportedAudio: only when FALLBACK_ON_UNSUPPORTED_AUDIO is off
        """
        tag = self._validate_input(audio_bytes, language_tag)
        context = context or VoiceContext()
        trace = _RequestTrace(tag)

        # CHECK_AVAILABILITY
        trace.enter(PipelineState.CHECK_AVAILABILITY)
        if self._availability.is_known:
            available = self._availability.get()
        else:
            available = await self._probe()
        # Advice used when the mock backend also fails.
        template: Optional[str] = None if available else self._mock.demo_advisory(tag)

        # TRANSCRIBE
        transcription: Optional[TranscriptionResult] = None
        if available:
            trace.enter(PipelineState.PRIMARY_TRANSCRIBE)
            stage = await self._transcribe_stage(audio_bytes, tag, encoding_hint, sample_rate)
            if stage.ok:
                transcription = stage.value
            else:
                logger.warning(
                    "Primary transcription failed, falling back to mock",
                    failure=stage.failure.value,
                    detail=stage.detail,
                )
                if stage.failure is FailureKind.UNSUPPORTED_AUDIO and not self.config.fallback_on_unsupported_audio:
                    raise UnsupportedAudio(stage.detail)
                if stage.failure is FailureKind.SERVICE_UNAVAILABLE:
                    self._availability.set(False)
                if stage.failure is FailureKind.UNEXPECTED:
                    template = self._mock.error_advisory(tag)
                trace.fall_back(WARNINGS[stage.failure])
        else:
            trace.fall_back(DEMO_MODE_WARNING)

        if transcription is None:
            trace.enter(PipelineState.MOCK_TRANSCRIBE)
            transcription = TranscriptionResult(
                text=self._mock.generate_query(tag),
                language_tag=tag,
                confidence=None,
                is_empty=False,
            )

        # GENERATE
        raw_text: Optional[str] = None
        if not trace.mock:
            trace.enter(PipelineState.PRIMARY_GENERATE)
            prompt = self._prompts.build(transcription.text, context, tag, prior_turns)
            stage = await self._generate_stage(prompt)
            if stage.ok:
                raw_text = stage.value
            else:
                logger.warning("Primary generation failed, falling back to mock", detail=stage.detail)
                trace.fall_back(WARNINGS[FailureKind.GENERATION_FAILED])

        if raw_text is None:
            trace.enter(PipelineState.MOCK_GENERATE)
            raw_text = await self._mock.generate_advisory(transcription.text, context, tag, template)

        # SHAPE
        trace.enter(PipelineState.SHAPE)
        shaped = self._shaper.shape(raw_text, tag)
        if not shaped.strip():
            trace.fall_back(EMPTY_ADVICE_WARNING)
            raw_text = template or self._mock.fallback_advisory(tag)
            shaped = self._shaper.shape(raw_text, tag)

        # SYNTHESIZE
        audio: Optional[bytes] = None
        mime_type = PLACEHOLDER_MIME_TYPE
        if not trace.mock:
            trace.enter(PipelineState.PRIMARY_SYNTHESIZE)
            stage = await self._synthesize_stage(shaped, tag)
            if stage.ok:
                audio = stage.value
                mime_type = self._speech.audio_mime_type
            else:
                logger.warning("Primary synthesis failed, using placeholder audio", detail=stage.detail)
                trace.fall_back(WARNINGS[FailureKind.SYNTHESIS_FAILED])

        if audio is None:
            trace.enter(PipelineState.MOCK_SYNTHESIZE)
            audio = self._mock.generate_audio(shaped, tag)
            mime_type = PLACEHOLDER_MIME_TYPE

        # DONE
        trace.enter(PipelineState.DONE)
        source = SourcePath.MOCK if trace.mock else SourcePath.PRIMARY
        advisory = AdvisoryResponse(
            raw_text=raw_text,
            shaped_text=shaped,
            language_tag=tag,
            source_path=source,
        )

        logger.info(
            "Voice query processed",
            language=tag,
            source_path=source.value,
            states=[s.value for s in trace.states],
            warning=trace.warning,
        )

        return VoiceQueryOutcome(
            transcription=transcription,
            advisory=advisory,
            audio_bytes=audio,
            warning=trace.warning,
            audio_mime_type=mime_type,
        )

    async def close(self) -> None:
        await self._speech.close()
        await self._backend.close()


def create_orchestrator(config: Optional[Any] = None) -> VoiceOrchestrator:
    """Wire the production providers from configuration."""
    from src.farmvoice.llm import OpenAICompatibleBackend
    from src.farmvoice.speech import create_speech_bridge

    config = config or get_config()
    return VoiceOrchestrator(
        speech=create_speech_bridge(config),
        backend=OpenAICompatibleBackend(config),
        config=config,
    )


# Singleton instance
_orchestrator_instance: Optional[VoiceOrchestrator] = None


def get_orchestrator() -> VoiceOrchestrator:
    """Get or create the orchestrator singleton."""
    global _orchestrator_instance

    if _orchestrator_instance is None:
        _orchestrator_instance = create_orchestrator()

    return _orchestrator_instance
