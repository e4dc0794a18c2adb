"""
Pytest configuration and fixtures.
"""

import pytest
import os
from unittest.mock import patch


@pytest.fixture(autouse=True)
def mock_env_vars():
    """Mock environment variables for tests."""
    env_vars = {
        "PORT": "5000",
        "LOG_LEVEL": "DEBUG",
        "LLM_PROVIDER": "groq",
        "GROQ_API_KEY": "test_groq_key",
        "GROQ_MODEL": "llama-3.3-70b-versatile",
        "TTS_PROVIDER": "google",
        "DEFAULT_WORD_BUDGET": "30",
        "WORD_BUDGET_OVERRIDES": "",
        "FALLBACK_ON_UNSUPPORTED_AUDIO": "true",
        "LLM_VALIDATE_ON_STARTUP": "false",
    }

    with patch.dict(os.environ, env_vars):
        # Clear config cache
        from src.farmvoice.config import get_config
        get_config.cache_clear()
        yield
        get_config.cache_clear()


@pytest.fixture
def sample_webm_audio():
    """Bytes that start like a WebM recording."""
    return b"\x1a\x45\xdf\xa3" + b"\x00" * 64


@pytest.fixture
def long_reply():
    """A 200-word advisory reply."""
    return " ".join(f"word{i}" for i in range(200))


@pytest.fixture
def voice_context():
    from src.farmvoice.voice_types import ExperienceLevel, VoiceContext

    return VoiceContext(
        location="Karnataka",
        season="Monsoon",
        crop="Tomato",
        experience_level=ExperienceLevel.BEGINNER,
    )
