"""
Failure taxonomy for the voice pipeline.

Provider exceptions are converted into these at the SpeechBridge and
generation-backend boundaries. Only `ProcessingFailed` (and `UnsupportedAudio`
when fallback for it is disabled) ever reach the caller of the orchestrator.
"""

from __future__ import annotations


class FarmVoiceError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


class UnsupportedAudio(FarmVoiceError):
    """The encoding/sample-rate combination was rejected. Client-correctable."""


class ServiceUnavailable(FarmVoiceError):
    """The speech provider is unreachable or denied access."""


class NoSpeechDetected(FarmVoiceError):
    """The provider returned no segments or only whitespace."""


class SynthesisFailed(FarmVoiceError):
    """Text-to-speech failed."""


class GenerationFailed(FarmVoiceError):
    """The generative backend failed or returned nothing."""


class ProcessingFailed(FarmVoiceError):
    """The request cannot be served even by the mock path (no audio, unsupported language)."""
