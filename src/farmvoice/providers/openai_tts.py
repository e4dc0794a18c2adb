from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from src.farmvoice.config import get_config
from src.farmvoice.providers.base import TTSProvider, VoiceRequest

logger = structlog.get_logger(__name__)


class OpenAITTS(TTSProvider):
    """
    OpenAI Text-to-Speech provider (non-streaming).

    Synthesizes the full answer as MP3. `gender` is ignored; `voice_name`
    overrides the configured voice.
    """

    mime_type = "audio/mpeg"

    def __init__(self, config: Optional[Any] = None):
        self.config = config or get_config()

    async def synthesize(self, text: str, request: VoiceRequest) -> bytes:
        from openai import OpenAI  # Local import to keep module import light

        client = OpenAI(api_key=self.config.openai_api_key)
        voice = request.voice_name or self.config.openai_tts_voice

        def _call() -> bytes:
            resp = client.audio.speech.create(
                model=self.config.openai_tts_model,
                voice=voice,
                input=text,
                response_format="mp3",
                speed=request.speaking_rate,
            )
            # SDKs have varied over time; handle several shapes.
            data = getattr(resp, "content", None)
            if isinstance(data, (bytes, bytearray)):
                return bytes(data)
            read = getattr(resp, "read", None)
            if callable(read):
                return read()
            return bytes(resp)

        audio = await asyncio.to_thread(_call)
        logger.debug("OpenAI TTS response", voice=voice, audio_bytes=len(audio))
        return audio
