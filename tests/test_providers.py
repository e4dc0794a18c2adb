"""
Tests for the Google speech providers with mocked clients.
"""

import dataclasses
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.cloud import speech, texttospeech

from src.farmvoice.config import get_config
from src.farmvoice.providers.base import RecognitionRequest, VoiceRequest
from src.farmvoice.providers.google_stt import GoogleSpeechToText
from src.farmvoice.providers.google_tts import GoogleTextToSpeech
from src.farmvoice.speech import create_speech_bridge


def _request(**overrides):
    values = dict(
        language_tag="hi-IN",
        encoding="WEBM_OPUS",
        sample_rate=48000,
        alternative_language_codes=("en-IN", "hi-IN"),
        phrase_hints=("crop", "pest"),
    )
    values.update(overrides)
    return RecognitionRequest(**values)


class TestGoogleSpeechToText:
    def test_config_drops_primary_from_alternatives(self):
        config = GoogleSpeechToText.build_config(_request())

        assert config.language_code == "hi-IN"
        assert list(config.alternative_language_codes) == ["en-IN"]
        assert config.encoding == speech.RecognitionConfig.AudioEncoding.WEBM_OPUS
        assert config.sample_rate_hertz == 48000
        assert list(config.speech_contexts[0].phrases) == ["crop", "pest"]
        assert config.enable_automatic_punctuation

    def test_sample_rate_omitted_when_unknown(self):
        config = GoogleSpeechToText.build_config(_request(sample_rate=None, encoding="FLAC"))
        assert config.sample_rate_hertz == 0

    @pytest.mark.asyncio
    async def test_recognize_returns_best_alternatives(self):
        response = SimpleNamespace(
            results=[
                SimpleNamespace(alternatives=[SimpleNamespace(transcript="gehu", confidence=0.9)]),
                SimpleNamespace(alternatives=[]),
                SimpleNamespace(alternatives=[SimpleNamespace(transcript="daag", confidence=0.0)]),
            ]
        )
        client = MagicMock()
        client.recognize = AsyncMock(return_value=response)

        segments = await GoogleSpeechToText(client=client).recognize(b"audio", _request())

        assert [s.text for s in segments] == ["gehu", "daag"]
        assert segments[0].confidence == 0.9
        assert segments[1].confidence is None
        assert client.recognize.await_args.kwargs["audio"].content == b"audio"


class TestGoogleTextToSpeech:
    @pytest.mark.asyncio
    async def test_synthesize_mp3(self):
        client = MagicMock()
        client.synthesize_speech = AsyncMock(return_value=SimpleNamespace(audio_content=b"mp3"))

        audio = await GoogleTextToSpeech(client=client).synthesize(
            "Namaste", VoiceRequest("hi-IN", voice_name="hi-IN-Wavenet-A", gender="female")
        )

        assert audio == b"mp3"
        kwargs = client.synthesize_speech.await_args.kwargs
        assert kwargs["input"].text == "Namaste"
        assert kwargs["voice"].name == "hi-IN-Wavenet-A"
        assert kwargs["voice"].ssml_gender == texttospeech.SsmlVoiceGender.FEMALE
        assert kwargs["audio_config"].audio_encoding == texttospeech.AudioEncoding.MP3
        assert kwargs["audio_config"].speaking_rate == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_unknown_gender_is_neutral(self):
        client = MagicMock()
        client.synthesize_speech = AsyncMock(return_value=SimpleNamespace(audio_content=b"mp3"))

        await GoogleTextToSpeech(client=client).synthesize("hi", VoiceRequest("en-IN", gender="robot"))

        voice = client.synthesize_speech.await_args.kwargs["voice"]
        assert voice.ssml_gender == texttospeech.SsmlVoiceGender.NEUTRAL

    @pytest.mark.asyncio
    async def test_list_voices_filters_by_language(self):
        voices = [
            SimpleNamespace(
                name="hi-IN-Standard-A",
                language_codes=["hi-IN"],
                ssml_gender=texttospeech.SsmlVoiceGender.FEMALE,
                natural_sample_rate_hertz=24000,
            ),
            SimpleNamespace(
                name="en-IN-Standard-B",
                language_codes=["en-IN"],
                ssml_gender=texttospeech.SsmlVoiceGender.MALE,
                natural_sample_rate_hertz=24000,
            ),
        ]
        client = MagicMock()
        client.list_voices = AsyncMock(return_value=SimpleNamespace(voices=voices))

        found = await GoogleTextToSpeech(client=client).list_voices("hi-IN")

        assert [v.name for v in found] == ["hi-IN-Standard-A"]
        assert found[0].gender == "FEMALE"
        assert found[0].natural_sample_rate_hertz == 24000


class TestClientCreation:
    def test_stt_client_uses_quota_project(self):
        with patch("src.farmvoice.providers.google_stt.speech.SpeechAsyncClient") as client_cls:
            GoogleSpeechToText(project_id="farm-project")._get_client()

        options = client_cls.call_args.kwargs["client_options"]
        assert options.quota_project_id == "farm-project"

    def test_tts_client_without_project_uses_defaults(self):
        with patch("src.farmvoice.providers.google_tts.texttospeech.TextToSpeechAsyncClient") as client_cls:
            GoogleTextToSpeech()._get_client()

        assert client_cls.call_args.kwargs["client_options"] is None

    def test_bridge_factory_passes_project(self):
        config = dataclasses.replace(get_config(), google_project_id="farm-project")
        bridge = create_speech_bridge(config)

        assert bridge._stt._project_id == "farm-project"
        assert bridge._tts._project_id == "farm-project"
