"""
FastAPI server for the FarmVoice assistant.

Endpoints:
- GET /health: Health check
- POST /api/voice/query: Answer a recorded farmer question (audio in, advice + audio out)
- POST /api/voice/transcribe: Speech to text only
- POST /api/voice/synthesize: Text to speech only
- GET /api/voice/languages: Supported languages
- GET /api/voice/voices/{language}: Available TTS voices
- GET /api/voice/status: Speech availability (production/demo)
- POST /api/voice/status/reset: Forget the cached availability
- GET /api/voice/test: Text-to-speech self-check
"""

import base64
import json
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
import logging

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import structlog
import uvicorn

from src.farmvoice.audio import sniff_audio_format
from src.farmvoice.config import ConfigError, get_config, init_config
from src.farmvoice.errors import (
    NoSpeechDetected,
    ProcessingFailed,
    ServiceUnavailable,
    SynthesisFailed,
    UnsupportedAudio,
)
from src.farmvoice.language import SUPPORTED_LANGUAGES, parse_language_tag
from src.farmvoice.orchestrator import VoiceOrchestrator, get_orchestrator
from src.farmvoice.voice_types import VoiceContext


# Initialize structured logging
def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_level != "DEBUG" else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Set log level
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


logger = structlog.get_logger(__name__)

DEMO_INFO = "Using demo mode. Enable the cloud speech services for full functionality."
VOICE_TEST_LANGUAGE = "hi-IN"
VOICE_TEST_TEXT = "नमस्कार! मैं आपका कृषि सहायक हूं। आप मुझसे खेती के बारे में कुछ भी पूछ सकते हैं।"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting FarmVoice server...")

    try:
        # Initialize and validate configuration
        config = init_config()
        configure_logging(config.log_level)

        orchestrator = get_orchestrator()

        if config.llm_validate_on_startup:
            from src.farmvoice.llm import OpenAICompatibleBackend

            backend = OpenAICompatibleBackend(config)
            try:
                if not await backend.validate_model():
                    logger.warning("LLM model validation failed; advisories will use the fallback path")
            finally:
                await backend.close()

        status = await orchestrator.check_availability()
        logger.info("Server ready", port=config.port, mode=status.mode)

    except ConfigError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)
    except SystemExit:
        raise
    except Exception as e:
        logger.error("Startup failed", error=str(e))
        sys.exit(1)

    yield

    # Shutdown
    logger.info("Shutting down server...")
    await get_orchestrator().close()


# Create FastAPI app
app = FastAPI(
    title="FarmVoice",
    description="Voice-first agricultural advisor for Indian farmers",
    version="1.0.0",
    lifespan=lifespan,
)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def _unsupported_language(language: str) -> JSONResponse:
    return _error(400, f"Unsupported language: {language}", supportedLanguages=SUPPORTED_LANGUAGES)


def _parse_history(history: Optional[str]) -> list:
    if not history:
        return []
    try:
        turns = json.loads(history)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed history field")
        return []
    if not isinstance(turns, list):
        return []
    return [t for t in turns if isinstance(t, dict)]


async def _read_audio(audio: UploadFile, max_bytes: int) -> tuple[Optional[bytes], Optional[JSONResponse]]:
    content_type = (audio.content_type or "").lower()
    if content_type and not content_type.startswith("audio/") and content_type != "application/octet-stream":
        return None, _error(400, "Only audio files are allowed!")

    data = await audio.read()
    if len(data) > max_bytes:
        return None, _error(413, f"Audio file exceeds {max_bytes} bytes")
    return data, None


class SynthesizeRequest(BaseModel):
    text: str = Field(..., description="Text to speak.")
    language: Optional[str] = Field(None, description="BCP-47 language tag; defaults to DEFAULT_LANGUAGE.")
    voiceName: Optional[str] = Field(None, description="Specific provider voice name.")
    gender: str = Field("NEUTRAL", description="NEUTRAL, MALE or FEMALE.")


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy", "timestamp": time.time()})


@app.post("/api/voice/query")
async def voice_query(
    audio: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    season: Optional[str] = Form(None),
    crop: Optional[str] = Form(None),
    experience: Optional[str] = Form(None),
    encoding: Optional[str] = Form(None),
    sample_rate: Optional[int] = Form(None),
    history: Optional[str] = Form(None),
    orchestrator: VoiceOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Process a voice query from a farmer."""
    if audio is None:
        return _error(400, "No audio file provided")
    language = language or get_config().default_language
    if parse_language_tag(language) is None:
        return _unsupported_language(language)

    data, error = await _read_audio(audio, get_config().max_audio_bytes)
    if error is not None:
        return error

    if not encoding:
        sniffed = sniff_audio_format(data)
        if sniffed is not None:
            encoding = sniffed.encoding
            sample_rate = sample_rate or sniffed.sample_rate

    context = VoiceContext.from_mapping(
        {"location": location, "season": season, "crop": crop, "experience": experience}
    )

    logger.info("Processing voice query", language=language, context=context.to_dict())

    try:
        outcome = await orchestrator.process_voice_query(
            data,
            language,
            context,
            _parse_history(history),
            encoding_hint=encoding,
            sample_rate=sample_rate,
        )
    except ProcessingFailed as e:
        return _error(400, e.reason or "Failed to process voice query")
    except UnsupportedAudio as e:
        return _error(415, e.reason or "Audio format not supported")

    payload = outcome.to_dict()
    payload["context"] = context.to_dict()
    response: dict[str, Any] = {"success": True, "data": payload}
    if outcome.warning:
        response["warning"] = outcome.warning
    if outcome.is_mock:
        response["info"] = DEMO_INFO

    return JSONResponse(content=response)


@app.post("/api/voice/transcribe")
async def transcribe(
    audio: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    encoding: Optional[str] = Form(None),
    sample_rate: Optional[int] = Form(None),
    orchestrator: VoiceOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Convert speech to text only."""
    if audio is None:
        return _error(400, "No audio file provided")
    language = language or get_config().default_language
    tag = parse_language_tag(language)
    if tag is None:
        return _unsupported_language(language)

    data, error = await _read_audio(audio, get_config().max_audio_bytes)
    if error is not None:
        return error
    if not data:
        return _error(400, "No audio file provided")

    try:
        result = await orchestrator.speech.transcribe(data, tag.value, encoding, sample_rate)
    except UnsupportedAudio as e:
        return _error(400, e.reason)
    except NoSpeechDetected as e:
        return _error(422, e.reason)
    except ServiceUnavailable as e:
        return _error(503, e.reason)

    return JSONResponse(
        content={
            "success": True,
            "data": {
                "transcription": result.text,
                "confidence": result.confidence,
                "language": tag.value,
                "languageName": SUPPORTED_LANGUAGES[tag.value],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
    )


@app.post("/api/voice/synthesize")
async def synthesize(
    body: SynthesizeRequest,
    orchestrator: VoiceOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Convert text to speech."""
    if not body.text.strip():
        return _error(400, "Text is required")
    language = body.language or get_config().default_language
    tag = parse_language_tag(language)
    if tag is None:
        return _unsupported_language(language)

    try:
        audio = await orchestrator.speech.synthesize(body.text, tag.value, body.voiceName, body.gender)
    except SynthesisFailed as e:
        return _error(502, e.reason)

    return JSONResponse(
        content={
            "success": True,
            "data": {
                "text": body.text,
                "language": tag.value,
                "languageName": SUPPORTED_LANGUAGES[tag.value],
                "audio": base64.b64encode(audio).decode("ascii"),
                "audioMimeType": orchestrator.speech.audio_mime_type,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
    )


@app.get("/api/voice/languages")
async def languages() -> JSONResponse:
    """Get supported languages."""
    return JSONResponse(
        content={
            "success": True,
            "data": {"languages": SUPPORTED_LANGUAGES, "total": len(SUPPORTED_LANGUAGES)},
        }
    )


@app.get("/api/voice/voices/{language}")
async def voices(
    language: str,
    orchestrator: VoiceOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Get available voices for a specific language."""
    tag = parse_language_tag(language)
    if tag is None:
        return _unsupported_language(language)

    found = await orchestrator.speech.list_voices(tag.value)
    return JSONResponse(
        content={
            "success": True,
            "data": {
                "language": tag.value,
                "languageName": SUPPORTED_LANGUAGES[tag.value],
                "voices": [v.to_dict() for v in found],
            },
        }
    )


@app.get("/api/voice/status")
async def voice_status(orchestrator: VoiceOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    """Speech availability (probes once, then answers from cache)."""
    status = await orchestrator.check_availability()
    return JSONResponse(content={"success": True, "data": status.to_dict()})


@app.post("/api/voice/status/reset")
async def reset_voice_status(orchestrator: VoiceOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    orchestrator.reset_availability_cache()
    return JSONResponse(content={"success": True, "message": "Availability cache cleared"})


@app.get("/api/voice/test")
async def voice_test(orchestrator: VoiceOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    """Speak a fixed Hindi greeting to check text-to-speech end to end."""
    try:
        audio = await orchestrator.speech.synthesize(VOICE_TEST_TEXT, VOICE_TEST_LANGUAGE)
    except SynthesisFailed as e:
        logger.error("Voice test failed", error=e.reason)
        return _error(500, "Voice AI test failed", details=e.reason)

    return JSONResponse(
        content={
            "success": True,
            "message": "Voice AI is working correctly",
            "data": {
                "testText": VOICE_TEST_TEXT,
                "language": VOICE_TEST_LANGUAGE,
                "audio": base64.b64encode(audio).decode("ascii"),
                "audioMimeType": orchestrator.speech.audio_mime_type,
                "supportedLanguages": list(SUPPORTED_LANGUAGES),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


def main() -> None:
    """Run the server."""
    config = get_config()
    configure_logging(config.log_level)

    logger.info("Starting server", port=config.port)

    uvicorn.run(
        "server.app:app",
        host="0.0.0.0",
        port=config.port,
        log_level=config.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
