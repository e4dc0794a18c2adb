"""
Tests for language tables and word budgets.
"""

import pytest

from src.farmvoice.language import (
    DEFAULT_LANGUAGE,
    MAX_CUE_WORDS,
    SUPPORTED_LANGUAGES,
    LanguageTag,
    WordBudgets,
    get_rules,
    is_supported,
    language_name,
    parse_language_tag,
)


class TestParseLanguageTag:
    @pytest.mark.parametrize("raw", ["hi-IN", "hi-in", "HI_IN", "  hi-IN  "])
    def test_normalizes_case_and_separator(self, raw):
        assert parse_language_tag(raw) is LanguageTag.HINDI

    @pytest.mark.parametrize("raw", [None, "", "fr-FR", "hi", "xx-IN"])
    def test_unknown_tags(self, raw):
        assert parse_language_tag(raw) is None
        assert not is_supported(raw)


def test_supported_languages_lists_every_tag():
    assert set(SUPPORTED_LANGUAGES) == {tag.value for tag in LanguageTag}
    assert SUPPORTED_LANGUAGES["hi-IN"] == "Hindi"
    assert language_name("ta-IN") == "Tamil"


def test_unknown_tag_gets_default_rules():
    assert get_rules("fr-FR") is get_rules(DEFAULT_LANGUAGE.value)
    assert get_rules(None).continue_cue == "Continue?"


def test_missing_fields_inherit_default():
    marathi = get_rules("mr-IN")
    english = get_rules("en-IN")

    assert marathi.continue_cue == "अजून सांगू?"
    assert marathi.sample_queries == english.sample_queries
    assert marathi.fallback_advisory == english.fallback_advisory
    assert marathi.error_message != english.error_message


@pytest.mark.parametrize("tag", list(LanguageTag))
def test_every_language_has_usable_texts(tag):
    rules = get_rules(tag.value)
    assert rules.tag is tag
    assert rules.sample_queries
    assert rules.fallback_advisory.strip()
    assert rules.continue_cue.strip()


class TestWordBudgets:
    def test_default_applies_without_table_value(self):
        budgets = WordBudgets(default=40)
        assert budgets.for_language("hi-IN") == 40
        assert budgets.for_language("unknown") == 40

    def test_table_value_beats_default(self):
        budgets = WordBudgets(default=40)
        assert budgets.for_language("ta-IN") == 25
        assert budgets.for_language("kn-IN") == 25

    def test_override_beats_table(self):
        budgets = WordBudgets(overrides={"ta_in": 12})
        assert budgets.for_language("ta-IN") == 12

    def test_budget_never_smaller_than_cue_reserve(self):
        budgets = WordBudgets(default=1, overrides={"hi-IN": 0})
        assert budgets.for_language("en-IN") == MAX_CUE_WORDS + 1
        assert budgets.for_language("hi-IN") == MAX_CUE_WORDS + 1
