from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RecognitionRequest:
    """Provider-neutral speech recognition settings."""

    language_tag: str
    encoding: str
    sample_rate: Optional[int] = None
    alternative_language_codes: tuple[str, ...] = ()
    phrase_hints: tuple[str, ...] = ()
    phrase_boost: float = 20.0
    model: str = "latest_long"
    use_enhanced: bool = True


@dataclass(frozen=True)
class RecognizedSegment:
    text: str
    confidence: Optional[float] = None


@dataclass(frozen=True)
class VoiceRequest:
    language_tag: str
    voice_name: Optional[str] = None
    gender: str = "NEUTRAL"
    speaking_rate: float = 0.9


@dataclass(frozen=True)
class VoiceInfo:
    name: str
    gender: str = "NEUTRAL"
    natural_sample_rate_hertz: int = 0
    language_codes: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "gender": self.gender,
            "naturalSampleRateHertz": self.natural_sample_rate_hertz,
        }


class STTProvider(ABC):
    @abstractmethod
    async def recognize(self, audio_bytes: bytes, request: RecognitionRequest) -> list[RecognizedSegment]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class TTSProvider(ABC):
    # MIME type of the bytes returned by `synthesize`.
    mime_type: str = "audio/mpeg"

    @abstractmethod
    async def synthesize(self, text: str, request: VoiceRequest) -> bytes:
        raise NotImplementedError

    async def list_voices(self, language_tag: str) -> list[VoiceInfo]:
        return []

    async def close(self) -> None:
        return None
