"""
SpeechBridge: speech-to-text and text-to-speech behind one error taxonomy.

Provider exceptions never leave this module raw. Transcription failures are
converted to UnsupportedAudio / ServiceUnavailable / NoSpeechDetected and
synthesis failures to SynthesisFailed.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from src.farmvoice.config import get_config
from src.farmvoice.errors import (
    FarmVoiceError,
    NoSpeechDetected,
    ServiceUnavailable,
    SynthesisFailed,
    UnsupportedAudio,
)
from src.farmvoice.language import language_name
from src.farmvoice.providers.base import (
    RecognitionRequest,
    STTProvider,
    TTSProvider,
    VoiceInfo,
    VoiceRequest,
)
from src.farmvoice.voice_types import TranscriptionResult

logger = structlog.get_logger(__name__)

SUPPORTED_ENCODINGS = frozenset(
    {"LINEAR16", "FLAC", "MULAW", "AMR", "AMR_WB", "OGG_OPUS", "WEBM_OPUS"}
)
MIN_SAMPLE_RATE = 8000
MAX_SAMPLE_RATE = 48000

ALTERNATIVE_LANGUAGES = ("en-IN", "hi-IN")

AGRICULTURE_PHRASES = (
    "farming", "crop", "disease", "pest", "fertilizer", "irrigation", "harvest", "seed",
    "soil", "weather", "wheat", "rice", "cotton", "tomato", "potato", "onion", "maize",
    "sugarcane", "millet", "yellowing", "wilting", "spots", "insects", "fungus", "drought",
    "water", "market", "price",
)

_UNAVAILABLE_ERRORS = (
    google_exceptions.PermissionDenied,
    google_exceptions.Unauthenticated,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ResourceExhausted,
    google_exceptions.NotFound,
    google_exceptions.RetryError,
    auth_exceptions.GoogleAuthError,
)


def classify_transcription_error(exc: BaseException) -> FarmVoiceError:
    """Map a provider exception onto the transcription failure kinds."""
    if isinstance(exc, FarmVoiceError):
        return exc
    if isinstance(exc, google_exceptions.InvalidArgument):
        return UnsupportedAudio("Audio format not supported. Please check your microphone settings.")
    if isinstance(exc, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
        return ServiceUnavailable("Speech recognition service not available.")
    if isinstance(exc, _UNAVAILABLE_ERRORS):
        return ServiceUnavailable("Speech recognition service temporarily unavailable.")
    return ServiceUnavailable(f"Speech recognition failed: {exc}")


def normalize_encoding(encoding_hint: Optional[str]) -> str:
    return (encoding_hint or "").strip().upper().replace("-", "_")


class SpeechBridge:
    """Wraps the STT and TTS providers used by the primary pipeline."""

    def __init__(
        self,
        stt: STTProvider,
        tts: TTSProvider,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self._stt = stt
        self._tts = tts

    @property
    def audio_mime_type(self) -> str:
        return self._tts.mime_type

    def _recognition_request(
        self,
        language_tag: str,
        encoding_hint: Optional[str],
        sample_rate: Optional[int],
    ) -> RecognitionRequest:
        encoding = normalize_encoding(encoding_hint or self.config.stt_default_encoding)
        if encoding not in SUPPORTED_ENCODINGS:
            raise UnsupportedAudio(f"Unsupported audio encoding: {encoding_hint}")

        # The configured rate belongs to the configured default encoding only.
        if sample_rate is None and not encoding_hint:
            sample_rate = self.config.stt_default_sample_rate or None

        if sample_rate is not None:
            try:
                sample_rate = int(sample_rate)
            except (TypeError, ValueError):
                raise UnsupportedAudio(f"Invalid sample rate: {sample_rate!r}")
            if not MIN_SAMPLE_RATE <= sample_rate <= MAX_SAMPLE_RATE:
                raise UnsupportedAudio(
                    f"Sample rate {sample_rate} Hz outside {MIN_SAMPLE_RATE}-{MAX_SAMPLE_RATE} Hz"
                )

        return RecognitionRequest(
            language_tag=language_tag,
            encoding=encoding,
            sample_rate=sample_rate,
            alternative_language_codes=ALTERNATIVE_LANGUAGES,
            phrase_hints=AGRICULTURE_PHRASES,
            model=self.config.stt_model,
            use_enhanced=self.config.stt_use_enhanced,
        )

    async def transcribe(
        self,
        audio_bytes: bytes,
        language_tag: str,
        encoding_hint: Optional[str] = None,
        sample_rate: Optional[int] = None,
    ) -> TranscriptionResult:
        """
        Transcribe recorded audio.

        Raises:
            UnsupportedAudio: encoding/sample rate rejected
            ServiceUnavailable: provider unreachable or access denied
            NoSpeechDetected: nothing recognized
        """
        request = self._recognition_request(language_tag, encoding_hint, sample_rate)

        logger.info(
            "Transcribing audio",
            language=language_name(language_tag),
            audio_bytes=len(audio_bytes or b""),
            encoding=request.encoding,
            sample_rate=request.sample_rate,
        )

        try:
            segments = await self._stt.recognize(audio_bytes, request)
        except Exception as e:
            error = classify_transcription_error(e)
            logger.warning(
                "Speech-to-text failed",
                error=str(e),
                kind=type(error).__name__,
            )
            raise error from e

        if not segments:
            raise NoSpeechDetected("No speech detected in the audio. Please speak clearly and try again.")

        text = "\n".join(s.text for s in segments).strip()
        if not text:
            raise NoSpeechDetected("Could not understand the speech. Please speak clearly and try again.")

        confidence = segments[0].confidence
        logger.info("Transcribed audio", chars=len(text), confidence=confidence)

        return TranscriptionResult(
            text=text,
            language_tag=language_tag,
            confidence=confidence,
            is_empty=False,
        )

    async def synthesize(
        self,
        text: str,
        language_tag: str,
        voice_hint: Optional[str] = None,
        gender_hint: str = "NEUTRAL",
    ) -> bytes:
        """Synthesize speech. Raises SynthesisFailed on any provider error or empty audio."""
        if not text or not text.strip():
            raise SynthesisFailed("Nothing to synthesize")

        request = VoiceRequest(
            language_tag=language_tag,
            voice_name=voice_hint,
            gender=gender_hint or "NEUTRAL",
            speaking_rate=self.config.tts_speaking_rate,
        )

        try:
            audio = await self._tts.synthesize(text, request)
        except Exception as e:
            logger.warning("Text-to-speech failed", error=str(e), language=language_tag)
            raise SynthesisFailed(f"Speech synthesis failed: {e}") from e

        if not audio:
            raise SynthesisFailed("Speech synthesis returned no audio")

        logger.debug("Speech generated", language=language_tag, audio_bytes=len(audio))
        return audio

    async def list_voices(self, language_tag: str) -> list[VoiceInfo]:
        try:
            return await self._tts.list_voices(language_tag)
        except Exception as e:
            logger.error("Error fetching voices", error=str(e), language=language_tag)
            return []

    async def close(self) -> None:
        await self._stt.close()
        await self._tts.close()


def create_speech_bridge(config: Optional[Any] = None) -> SpeechBridge:
    """Build the bridge for the configured providers."""
    config = config or get_config()

    from src.farmvoice.providers.google_stt import GoogleSpeechToText

    tts_name = (config.tts_provider or "google").strip().lower()
    tts: TTSProvider
    if tts_name == "google":
        from src.farmvoice.providers.google_tts import GoogleTextToSpeech

        tts = GoogleTextToSpeech(project_id=config.google_project_id)
    elif tts_name == "openai":
        from src.farmvoice.providers.openai_tts import OpenAITTS

        tts = OpenAITTS(config)
    else:
        raise ValueError(f"Unsupported TTS_PROVIDER: {config.tts_provider}")

    return SpeechBridge(stt=GoogleSpeechToText(project_id=config.google_project_id), tts=tts, config=config)
