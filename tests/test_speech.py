"""
Tests for SpeechBridge error mapping and request building.
"""

import os
from unittest.mock import patch

import pytest
from google.api_core import exceptions as google_exceptions

from fakes import FakeSTT, FakeTTS
from src.farmvoice.config import get_config
from src.farmvoice.errors import (
    NoSpeechDetected,
    ServiceUnavailable,
    SynthesisFailed,
    UnsupportedAudio,
)
from src.farmvoice.providers.base import RecognizedSegment, VoiceInfo
from src.farmvoice.speech import (
    AGRICULTURE_PHRASES,
    SpeechBridge,
    classify_transcription_error,
    normalize_encoding,
)


def _bridge(stt=None, tts=None):
    return SpeechBridge(stt or FakeSTT(), tts or FakeTTS())


class TestClassifyTranscriptionError:
    def test_invalid_argument_is_unsupported_audio(self):
        error = classify_transcription_error(google_exceptions.InvalidArgument("bad encoding"))
        assert isinstance(error, UnsupportedAudio)

    @pytest.mark.parametrize(
        "exc",
        [
            google_exceptions.PermissionDenied("no"),
            google_exceptions.Unauthenticated("no"),
        ],
    )
    def test_access_errors_are_not_available(self, exc):
        error = classify_transcription_error(exc)
        assert isinstance(error, ServiceUnavailable)
        assert "not available" in error.reason

    @pytest.mark.parametrize(
        "exc",
        [
            google_exceptions.ServiceUnavailable("down"),
            google_exceptions.DeadlineExceeded("slow"),
            google_exceptions.ResourceExhausted("quota"),
        ],
    )
    def test_transient_errors_are_temporarily_unavailable(self, exc):
        error = classify_transcription_error(exc)
        assert isinstance(error, ServiceUnavailable)
        assert "temporarily unavailable" in error.reason

    def test_anything_else_is_service_unavailable(self):
        assert isinstance(classify_transcription_error(RuntimeError("boom")), ServiceUnavailable)

    def test_domain_errors_pass_through(self):
        original = NoSpeechDetected("quiet")
        assert classify_transcription_error(original) is original


def test_normalize_encoding():
    assert normalize_encoding(" webm-opus ") == "WEBM_OPUS"
    assert normalize_encoding(None) == ""


class TestTranscribe:
    @pytest.mark.asyncio
    async def test_joins_segments_and_uses_first_confidence(self):
        stt = FakeSTT([RecognizedSegment("gehu mein", 0.91), RecognizedSegment("peele daag", 0.5)])
        result = await _bridge(stt=stt).transcribe(b"audio", "hi-IN")

        assert result.text == "gehu mein\npeele daag"
        assert result.confidence == 0.91
        assert result.language_tag == "hi-IN"
        assert not result.is_empty

    @pytest.mark.asyncio
    async def test_request_carries_hints(self):
        stt = FakeSTT([RecognizedSegment("ok", 0.8)])
        await _bridge(stt=stt).transcribe(b"audio", "ta-IN", "linear16", 16000)

        request = stt.calls[0]
        assert request.language_tag == "ta-IN"
        assert request.encoding == "LINEAR16"
        assert request.sample_rate == 16000
        assert request.alternative_language_codes == ("en-IN", "hi-IN")
        assert request.phrase_hints == AGRICULTURE_PHRASES
        assert request.model == "latest_long"

    @pytest.mark.asyncio
    async def test_default_encoding_from_config(self):
        stt = FakeSTT([RecognizedSegment("ok", 0.8)])
        await _bridge(stt=stt).transcribe(b"audio", "en-IN")
        assert stt.calls[0].encoding == "WEBM_OPUS"
        assert stt.calls[0].sample_rate == 48000

    @pytest.mark.asyncio
    async def test_configured_default_sample_rate(self):
        with patch.dict(os.environ, {"STT_DEFAULT_ENCODING": "LINEAR16", "STT_DEFAULT_SAMPLE_RATE": "16000"}):
            get_config.cache_clear()
            stt = FakeSTT([RecognizedSegment("ok", 0.8)])
            bridge = _bridge(stt=stt)

        await bridge.transcribe(b"audio", "en-IN")

        assert stt.calls[0].encoding == "LINEAR16"
        assert stt.calls[0].sample_rate == 16000

    @pytest.mark.asyncio
    async def test_default_sample_rate_not_applied_to_hinted_encoding(self):
        stt = FakeSTT([RecognizedSegment("ok", 0.8)])
        await _bridge(stt=stt).transcribe(b"audio", "en-IN", "FLAC")
        assert stt.calls[0].sample_rate is None

    @pytest.mark.asyncio
    async def test_no_segments_is_no_speech(self):
        with pytest.raises(NoSpeechDetected):
            await _bridge(stt=FakeSTT([])).transcribe(b"audio", "en-IN")

    @pytest.mark.asyncio
    async def test_blank_segments_are_no_speech(self):
        stt = FakeSTT([RecognizedSegment("   ", 0.1)])
        with pytest.raises(NoSpeechDetected):
            await _bridge(stt=stt).transcribe(b"audio", "en-IN")

    @pytest.mark.asyncio
    async def test_unknown_encoding_rejected_before_provider(self):
        stt = FakeSTT([RecognizedSegment("ok", 0.8)])
        with pytest.raises(UnsupportedAudio):
            await _bridge(stt=stt).transcribe(b"audio", "en-IN", "MP3")
        assert stt.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rate", [4000, 96000, "fast"])
    async def test_bad_sample_rate_rejected(self, rate):
        with pytest.raises(UnsupportedAudio):
            await _bridge().transcribe(b"audio", "en-IN", "LINEAR16", rate)

    @pytest.mark.asyncio
    async def test_provider_error_is_classified(self):
        stt = FakeSTT(error=google_exceptions.InvalidArgument("sample rate mismatch"))
        with pytest.raises(UnsupportedAudio):
            await _bridge(stt=stt).transcribe(b"audio", "en-IN")

    @pytest.mark.asyncio
    async def test_permission_error_is_service_unavailable(self):
        stt = FakeSTT(error=google_exceptions.PermissionDenied("api disabled"))
        with pytest.raises(ServiceUnavailable):
            await _bridge(stt=stt).transcribe(b"audio", "en-IN")


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_returns_audio_and_passes_voice_request(self):
        tts = FakeTTS(audio=b"mp3-bytes")
        audio = await _bridge(tts=tts).synthesize("Namaste", "hi-IN", "hi-IN-Wavenet-A", "FEMALE")

        assert audio == b"mp3-bytes"
        text, request = tts.calls[0]
        assert text == "Namaste"
        assert request.language_tag == "hi-IN"
        assert request.voice_name == "hi-IN-Wavenet-A"
        assert request.gender == "FEMALE"
        assert request.speaking_rate == 0.9

    @pytest.mark.asyncio
    async def test_empty_text_fails(self):
        tts = FakeTTS()
        with pytest.raises(SynthesisFailed):
            await _bridge(tts=tts).synthesize("  ", "en-IN")
        assert tts.calls == []

    @pytest.mark.asyncio
    async def test_provider_error_fails(self):
        with pytest.raises(SynthesisFailed):
            await _bridge(tts=FakeTTS(error=RuntimeError("quota"))).synthesize("hi", "en-IN")

    @pytest.mark.asyncio
    async def test_empty_audio_fails(self):
        with pytest.raises(SynthesisFailed):
            await _bridge(tts=FakeTTS(audio=b"")).synthesize("hi", "en-IN")


class TestListVoices:
    @pytest.mark.asyncio
    async def test_returns_provider_voices(self):
        tts = FakeTTS()
        tts.voices = [VoiceInfo("hi-IN-Standard-A", "FEMALE", 24000, ("hi-IN",))]
        voices = await _bridge(tts=tts).list_voices("hi-IN")
        assert [v.name for v in voices] == ["hi-IN-Standard-A"]

    @pytest.mark.asyncio
    async def test_errors_yield_empty_list(self):
        voices = await _bridge(tts=FakeTTS(error=RuntimeError("down"))).list_voices("hi-IN")
        assert voices == []


def test_audio_mime_type_comes_from_provider():
    assert _bridge().audio_mime_type == "audio/mpeg"
