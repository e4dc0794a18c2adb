from __future__ import annotations

from typing import Any, Optional

import structlog
from google.api_core.client_options import ClientOptions
from google.cloud import texttospeech

from src.farmvoice.providers.base import TTSProvider, VoiceInfo, VoiceRequest

logger = structlog.get_logger(__name__)


class GoogleTextToSpeech(TTSProvider):
    """Google Cloud Text-to-Speech, MP3 output."""

    mime_type = "audio/mpeg"

    def __init__(self, client: Optional[Any] = None, project_id: str = ""):
        self._client = client
        self._project_id = project_id

    def _get_client(self) -> Any:
        if self._client is None:
            options = ClientOptions(quota_project_id=self._project_id) if self._project_id else None
            self._client = texttospeech.TextToSpeechAsyncClient(client_options=options)
        return self._client

    async def synthesize(self, text: str, request: VoiceRequest) -> bytes:
        client = self._get_client()

        gender = (request.gender or "NEUTRAL").strip().upper()
        if gender not in texttospeech.SsmlVoiceGender.__members__:
            gender = "NEUTRAL"

        voice = texttospeech.VoiceSelectionParams(
            language_code=request.language_tag,
            ssml_gender=texttospeech.SsmlVoiceGender[gender],
        )
        if request.voice_name:
            voice.name = request.voice_name

        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
            speaking_rate=request.speaking_rate,
            pitch=0.0,
            volume_gain_db=0.0,
        )

        response = await client.synthesize_speech(
            input=texttospeech.SynthesisInput(text=text),
            voice=voice,
            audio_config=audio_config,
        )
        return bytes(response.audio_content)

    async def list_voices(self, language_tag: str) -> list[VoiceInfo]:
        client = self._get_client()
        response = await client.list_voices(language_code=language_tag)

        voices = []
        for voice in response.voices:
            codes = tuple(voice.language_codes)
            if language_tag not in codes:
                continue
            voices.append(
                VoiceInfo(
                    name=voice.name,
                    gender=texttospeech.SsmlVoiceGender(voice.ssml_gender).name,
                    natural_sample_rate_hertz=int(voice.natural_sample_rate_hertz),
                    language_codes=codes,
                )
            )
        return voices
