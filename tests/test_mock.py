"""
Tests for the mock fallback engine.
"""

import random

import pytest

from fakes import FakeBackend
from src.farmvoice.audio import read_wav_mono_pcm16
from src.farmvoice.errors import GenerationFailed
from src.farmvoice.language import LanguageTag, get_rules
from src.farmvoice.mock import PLACEHOLDER_AUDIO, MockFallbackEngine


@pytest.mark.parametrize("tag", [t.value for t in LanguageTag])
def test_query_comes_from_language_pool(tag):
    engine = MockFallbackEngine(rng=random.Random(7))
    for _ in range(5):
        query = engine.generate_query(tag)
        assert query in get_rules(tag).sample_queries


def test_unknown_language_uses_default_pool():
    engine = MockFallbackEngine(rng=random.Random(1))
    assert engine.generate_query("fr-FR") in get_rules("en-IN").sample_queries


def test_seeded_rng_is_reproducible():
    a = MockFallbackEngine(rng=random.Random(42))
    b = MockFallbackEngine(rng=random.Random(42))
    assert [a.generate_query("hi-IN") for _ in range(4)] == [b.generate_query("hi-IN") for _ in range(4)]


@pytest.mark.asyncio
async def test_advisory_uses_backend_with_mock_prompt(voice_context):
    backend = FakeBackend(reply="Use 2 ml neem oil per litre.")
    engine = MockFallbackEngine(backend=backend)

    text = await engine.generate_advisory("Whitefly on cotton?", voice_context, "en-IN")

    assert text == "Use 2 ml neem oil per litre."
    assert 'FARMER ASKS: "Whitefly on cotton?"' in backend.prompts[0]


@pytest.mark.asyncio
async def test_advisory_template_when_backend_fails():
    engine = MockFallbackEngine(backend=FakeBackend(error=GenerationFailed("down")))
    text = await engine.generate_advisory("q", None, "hi-IN")
    assert text == get_rules("hi-IN").fallback_advisory


@pytest.mark.asyncio
async def test_advisory_template_when_backend_returns_blank():
    engine = MockFallbackEngine(backend=FakeBackend(reply="   "))
    assert await engine.generate_advisory("q", None, "en-IN") == get_rules("en-IN").fallback_advisory


@pytest.mark.asyncio
async def test_advisory_template_without_backend():
    engine = MockFallbackEngine()
    assert await engine.generate_advisory("q", None, "te-IN") == get_rules("te-IN").fallback_advisory


@pytest.mark.asyncio
async def test_advisory_prefers_given_template_when_backend_fails():
    engine = MockFallbackEngine(backend=FakeBackend(error=GenerationFailed("down")))
    text = await engine.generate_advisory("q", None, "mr-IN", template=engine.demo_advisory("mr-IN"))
    assert text == get_rules("mr-IN").demo_message


def test_demo_and_error_advisories_are_localized():
    engine = MockFallbackEngine()
    assert engine.demo_advisory("hi-IN") == get_rules("hi-IN").demo_message
    assert engine.error_advisory("bn-IN") == get_rules("bn-IN").error_message
    assert engine.error_advisory("fr-FR") == get_rules("en-IN").error_message


def test_placeholder_audio_is_silent_wav():
    engine = MockFallbackEngine()
    audio = engine.generate_audio("anything", "en-IN")

    assert audio == PLACEHOLDER_AUDIO
    sample_rate, pcm = read_wav_mono_pcm16(audio)
    assert sample_rate == 16000
    assert pcm and set(pcm) == {0}
