from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")


class ExperienceLevel(str, Enum):
    BEGINNER = "Beginner"
    EXPERIENCED = "Experienced"
    EXPERT = "Expert"
    UNSPECIFIED = "Unspecified"

    @classmethod
    def parse(cls, value: Any) -> "ExperienceLevel":
        if isinstance(value, ExperienceLevel):
            return value
        norm = str(value or "").strip().lower()
        for level in cls:
            if level.value.lower() == norm:
                return level
        return cls.UNSPECIFIED

    @property
    def prompt_label(self) -> str:
        # The advisory prompt reads better with "Varied" than "Unspecified".
        return "Varied" if self is ExperienceLevel.UNSPECIFIED else self.value


@dataclass(frozen=True)
class VoiceContext:
    """Farmer context supplied per request."""

    location: str = "India"
    season: str = "Current season"
    crop: str = "General farming"
    experience_level: ExperienceLevel = ExperienceLevel.UNSPECIFIED

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "VoiceContext":
        data = data or {}
        defaults = cls()
        experience = data.get("experience_level", data.get("experience"))
        return cls(
            location=str(data.get("location") or "").strip() or defaults.location,
            season=str(data.get("season") or "").strip() or defaults.season,
            crop=str(data.get("crop") or "").strip() or defaults.crop,
            experience_level=ExperienceLevel.parse(experience),
        )

    def to_dict(self) -> dict:
        return {
            "location": self.location,
            "season": self.season,
            "crop": self.crop,
            "experience": self.experience_level.value,
        }


def _normalize_role(role: str) -> str:
    r = (role or "").strip().lower()
    if r in ("assistant", "agent", "bot", "model"):
        return "assistant"
    return "user"


@dataclass(frozen=True)
class ConversationTurn:
    """A single turn in the conversation."""
    role: str  # "user" or "assistant"
    content: str

    @classmethod
    def coerce(cls, turn: Any) -> "ConversationTurn":
        if isinstance(turn, ConversationTurn):
            return turn
        if isinstance(turn, Mapping):
            return cls(
                role=_normalize_role(str(turn.get("role", ""))),
                content=str(turn.get("content") or turn.get("text") or ""),
            )
        raise TypeError(f"Unsupported conversation turn: {type(turn).__name__}")


@dataclass(frozen=True)
class TranscriptionResult:
    """Result from STT."""
    text: str
    language_tag: str
    confidence: Optional[float] = None
    is_empty: bool = False

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "language": self.language_tag,
            "confidence": self.confidence,
            "isEmpty": self.is_empty,
        }


class SourcePath(str, Enum):
    PRIMARY = "primary"
    MOCK = "mock"


@dataclass(frozen=True)
class AdvisoryResponse:
    raw_text: str
    shaped_text: str
    language_tag: str
    source_path: SourcePath
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class VoiceQueryOutcome:
    """
    The unit returned to the caller of `process_voice_query`.

    `audio_bytes` is MP3 on the primary path and a WAV placeholder on the mock
    path; `audio_mime_type` says which.
    """

    transcription: TranscriptionResult
    advisory: AdvisoryResponse
    audio_bytes: bytes
    warning: Optional[str] = None
    audio_mime_type: str = "audio/mpeg"

    @property
    def is_mock(self) -> bool:
        return self.advisory.source_path is SourcePath.MOCK

    def to_dict(self) -> dict:
        return {
            "userQuery": self.transcription.text,
            "response": self.advisory.shaped_text,
            "language": self.advisory.language_tag,
            "timestamp": self.advisory.generated_at.isoformat(),
            "audio": base64.b64encode(self.audio_bytes).decode("ascii"),
            "audioMimeType": self.audio_mime_type,
            "isMock": self.is_mock,
            "sourcePath": self.advisory.source_path.value,
            "confidence": self.transcription.confidence,
        }


@dataclass(frozen=True)
class AvailabilityStatus:
    is_available: bool
    checked_at: float = field(default_factory=time.time)

    @property
    def mode(self) -> str:
        return "production" if self.is_available else "demo"

    def to_dict(self) -> dict:
        return {
            "isAvailable": self.is_available,
            "mode": self.mode,
            "checkedAt": datetime.fromtimestamp(self.checked_at, timezone.utc).isoformat(),
        }


class FailureKind(str, Enum):
    UNSUPPORTED_AUDIO = "unsupported_audio"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NO_SPEECH_DETECTED = "no_speech_detected"
    GENERATION_FAILED = "generation_failed"
    SYNTHESIS_FAILED = "synthesis_failed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one pipeline stage: either a value or a failure kind."""

    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: FailureKind, detail: str = "") -> "StageResult[T]":
        return cls(failure=failure, detail=detail)
