from __future__ import annotations

from typing import Any, Optional

import structlog
from google.api_core.client_options import ClientOptions
from google.cloud import speech

from src.farmvoice.providers.base import RecognitionRequest, RecognizedSegment, STTProvider

logger = structlog.get_logger(__name__)


class GoogleSpeechToText(STTProvider):
    """
    Google Cloud Speech-to-Text (v1, synchronous `recognize`).

    The async client is created on first use, so a missing service account only
    surfaces when a request is actually made.
    """

    def __init__(self, client: Optional[Any] = None, project_id: str = ""):
        self._client = client
        self._project_id = project_id

    def _get_client(self) -> Any:
        if self._client is None:
            options = ClientOptions(quota_project_id=self._project_id) if self._project_id else None
            self._client = speech.SpeechAsyncClient(client_options=options)
        return self._client

    @staticmethod
    def build_config(request: RecognitionRequest) -> speech.RecognitionConfig:
        alternatives = [
            code for code in request.alternative_language_codes if code != request.language_tag
        ]
        kwargs: dict[str, Any] = dict(
            encoding=speech.RecognitionConfig.AudioEncoding[request.encoding],
            language_code=request.language_tag,
            alternative_language_codes=alternatives,
            enable_automatic_punctuation=True,
            enable_word_time_offsets=False,
            model=request.model,
            use_enhanced=request.use_enhanced,
            max_alternatives=1,
        )
        if request.sample_rate:
            kwargs["sample_rate_hertz"] = int(request.sample_rate)
        if request.phrase_hints:
            kwargs["speech_contexts"] = [
                speech.SpeechContext(phrases=list(request.phrase_hints), boost=request.phrase_boost)
            ]
        return speech.RecognitionConfig(**kwargs)

    async def recognize(self, audio_bytes: bytes, request: RecognitionRequest) -> list[RecognizedSegment]:
        client = self._get_client()
        config = self.build_config(request)
        audio = speech.RecognitionAudio(content=audio_bytes)

        response = await client.recognize(config=config, audio=audio)

        segments: list[RecognizedSegment] = []
        for result in response.results:
            if not result.alternatives:
                continue
            best = result.alternatives[0]
            segments.append(
                RecognizedSegment(text=best.transcript, confidence=best.confidence or None)
            )

        logger.debug("Google STT response", segments=len(segments), language=request.language_tag)
        return segments
