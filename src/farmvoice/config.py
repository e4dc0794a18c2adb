"""
Configuration management for the FarmVoice assistant.

Loads environment variables and provides a strongly-typed configuration object.
Validates required keys at startup.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict

from dotenv import load_dotenv
import structlog

load_dotenv()

logger = structlog.get_logger(__name__)


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


@dataclass(frozen=True)
class Config:
    """Strongly-typed configuration object."""

    # Server
    port: int = 5000
    log_level: str = "INFO"
    max_audio_bytes: int = 10 * 1024 * 1024

    # Language
    # - default_language is used when the caller does not send a language tag
    default_language: str = "hi-IN"

    # LLM Provider (Groq/OpenAI)
    llm_provider: str = "groq"  # "groq" | "openai"
    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 512
    llm_temperature: float = 0.7
    llm_validate_on_startup: bool = True

    # Google Cloud Speech-to-Text
    google_project_id: str = ""
    stt_model: str = "latest_long"
    stt_use_enhanced: bool = True
    stt_default_encoding: str = "WEBM_OPUS"
    stt_default_sample_rate: int = 48000

    # Text-to-Speech
    tts_provider: str = "google"  # "google" | "openai"
    tts_speaking_rate: float = 0.9
    openai_tts_model: str = "gpt-4o-mini-tts"
    openai_tts_voice: str = "alloy"

    # Advisory shaping
    max_history_turns: int = 10
    default_word_budget: int = 30
    word_budget_overrides: str = ""

    # Fallback behaviour
    availability_probe_text: str = "Namaste"
    fallback_on_unsupported_audio: bool = True

    @property
    def llm_model(self) -> str:
        """Model name for the active LLM provider."""
        return self.openai_model if self.llm_provider == "openai" else self.groq_model

    @property
    def word_budgets(self) -> Dict[str, int]:
        """Parse WORD_BUDGET_OVERRIDES ("hi-IN=40,ta-IN=25") into a mapping."""
        budgets: Dict[str, int] = {}
        for item in (self.word_budget_overrides or "").split(","):
            tag, sep, value = item.partition("=")
            if not sep:
                continue
            try:
                budget = int(value.strip())
            except ValueError:
                logger.warning("Ignoring invalid word budget override", entry=item)
                continue
            if budget < 3:
                logger.warning("Ignoring word budget below 3", entry=item)
                continue
            budgets[tag.strip()] = budget
        return budgets

    def validate(self) -> None:
        """Validate that all required configuration is present."""
        missing = []

        provider = (self.llm_provider or "groq").strip().lower()
        if provider not in ("groq", "openai"):
            raise ConfigError(
                f"Invalid LLM_PROVIDER '{self.llm_provider}'. Expected 'groq' or 'openai'."
            )

        tts = (self.tts_provider or "google").strip().lower()
        if tts not in ("google", "openai"):
            raise ConfigError(
                f"Invalid TTS_PROVIDER '{self.tts_provider}'. Expected 'google' or 'openai'."
            )

        if provider == "groq":
            if not self.groq_api_key:
                missing.append("GROQ_API_KEY")
            if not self.groq_model:
                missing.append("GROQ_MODEL")

        if provider == "openai" or tts == "openai":
            if not self.openai_api_key:
                missing.append("OPENAI_API_KEY")
        if provider == "openai" and not self.openai_model:
            missing.append("OPENAI_MODEL")

        if self.default_word_budget < 3:
            raise ConfigError("DEFAULT_WORD_BUDGET must be at least 3.")

        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                "Please check your .env file."
            )

    def log_config(self) -> None:
        """Log configuration (without secrets)."""
        logger.info(
            "Configuration loaded",
            port=self.port,
            log_level=self.log_level,
            default_language=self.default_language,
            llm_provider=self.llm_provider,
            llm_model=self.llm_model,
            tts_provider=self.tts_provider,
            stt_model=self.stt_model,
            stt_default_encoding=self.stt_default_encoding,
            default_word_budget=self.default_word_budget,
            word_budget_overrides=self.word_budgets,
            fallback_on_unsupported_audio=self.fallback_on_unsupported_audio,
            google_project_id=self.google_project_id or "ADC default",
            groq_key_set=bool(self.groq_api_key),
            openai_key_set=bool(self.openai_api_key),
        )


def _get_bool(key: str, default: bool = False) -> bool:
    """Get a boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_int(key: str, default: int) -> int:
    """Get an integer from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get a float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the application configuration.

    Uses lru_cache to ensure we only load config once.
    """
    return Config(
        # Server
        port=_get_int("PORT", 5000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        max_audio_bytes=_get_int("MAX_AUDIO_BYTES", 10 * 1024 * 1024),

        # Language
        default_language=os.getenv("DEFAULT_LANGUAGE", "hi-IN").strip(),

        # LLM
        llm_provider=os.getenv("LLM_PROVIDER", "groq").strip().lower(),
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        llm_max_tokens=_get_int("LLM_MAX_TOKENS", 512),
        llm_temperature=_get_float("LLM_TEMPERATURE", 0.7),
        llm_validate_on_startup=_get_bool("LLM_VALIDATE_ON_STARTUP", True),

        # Google Speech
        google_project_id=os.getenv("GOOGLE_PROJECT_ID", os.getenv("PROJECT_ID", "")),
        stt_model=os.getenv("STT_MODEL", "latest_long"),
        stt_use_enhanced=_get_bool("STT_USE_ENHANCED", True),
        stt_default_encoding=os.getenv("STT_DEFAULT_ENCODING", "WEBM_OPUS").strip().upper(),
        stt_default_sample_rate=_get_int("STT_DEFAULT_SAMPLE_RATE", 48000),

        # TTS
        tts_provider=os.getenv("TTS_PROVIDER", "google").strip().lower(),
        tts_speaking_rate=_get_float("TTS_SPEAKING_RATE", 0.9),
        openai_tts_model=os.getenv("OPENAI_TTS_MODEL", "gpt-4o-mini-tts"),
        openai_tts_voice=os.getenv("OPENAI_TTS_VOICE", "alloy"),

        # Shaping
        max_history_turns=_get_int("MAX_HISTORY_TURNS", 10),
        default_word_budget=_get_int("DEFAULT_WORD_BUDGET", 30),
        word_budget_overrides=os.getenv("WORD_BUDGET_OVERRIDES", ""),

        # Fallback
        availability_probe_text=os.getenv("AVAILABILITY_PROBE_TEXT", "Namaste"),
        fallback_on_unsupported_audio=_get_bool("FALLBACK_ON_UNSUPPORTED_AUDIO", True),
    )


def init_config() -> Config:
    """
    Initialize and validate configuration.

    Call this at application startup to fail fast if config is invalid.
    """
    config = get_config()
    config.validate()
    config.log_config()
    return config
