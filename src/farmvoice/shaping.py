"""
Post-processing for generated advisory text.

Voice answers have to stay short: duplicate lines and greeting filler are
removed, paragraph spacing is normalized, and anything over the language's
word budget is cut and ends with a localized "continue?" cue.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

import structlog

from src.farmvoice.language import MAX_CUE_WORDS, WordBudgets, get_rules

logger = structlog.get_logger(__name__)

_WORD_RE = re.compile(r"\S+")
_MULTI_NEWLINE_RE = re.compile(r"\n{3,}")
_INLINE_SPACE_RE = re.compile(r"[ \t\f\v]+")


def word_count(text: str) -> int:
    return len((text or "").split())


def collapse_duplicate_lines(text: str) -> str:
    """Drop a line when it repeats the line directly above it. Blank lines are kept."""
    kept: list[str] = []
    previous: Optional[str] = None
    for line in text.split("\n"):
        trimmed = line.strip()
        if trimmed and trimmed == previous:
            continue
        kept.append(line)
        previous = trimmed
    return "\n".join(kept)


def _phrase_pattern(phrase: str) -> re.Pattern:
    # "Great question!" also matches "Great  question!" and "Great\tquestion!".
    words = [re.escape(w) for w in phrase.split()]
    return re.compile(r"\s+".join(words), re.IGNORECASE)


def strip_filler_phrases(text: str, phrases: Iterable[str]) -> str:
    patterns = [_phrase_pattern(p) for p in phrases if p and p.strip()]

    # Removing one phrase can splice together another occurrence.
    changed = True
    while changed:
        changed = False
        for pattern in patterns:
            text, count = pattern.subn("", text)
            changed = changed or count > 0

    return "\n".join(_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.split("\n"))


def truncate_words(text: str, keep_words: int, cue: str) -> str:
    """Keep the first `keep_words` words (original spacing intact) and append `cue`."""
    end = 0
    for index, match in enumerate(_WORD_RE.finditer(text)):
        if index == keep_words:
            break
        end = match.end()
    head = text[:end].rstrip()
    return f"{head} {cue}" if head else cue


class ResponseShaper:
    """
    Enforces per-language word budgets on generated text.

    `shape` is idempotent: a shaped string passes through a second call
    unchanged, including a truncated one (its word count already fits).
    """

    def __init__(self, budgets: Optional[WordBudgets] = None):
        self.budgets = budgets or WordBudgets()

    def budget(self, language_tag: Optional[str]) -> int:
        return self.budgets.for_language(language_tag)

    def shape(self, raw_text: str, language_tag: Optional[str]) -> str:
        if not raw_text or not raw_text.strip():
            return raw_text

        rules = get_rules(language_tag)
        text = raw_text.replace("\r\n", "\n").replace("\r", "\n")

        text = collapse_duplicate_lines(text)
        text = strip_filler_phrases(text, rules.filler_phrases)
        # Stripping filler can leave two equal lines next to each other.
        text = collapse_duplicate_lines(text)
        text = _MULTI_NEWLINE_RE.sub("\n\n", text).strip()

        if not text:
            logger.debug("Shaped text empty after filler removal", language=rules.tag.value)
            return text

        max_words = self.budget(language_tag)
        words = word_count(text)
        if words <= max_words:
            return text

        cue = rules.continue_cue
        if word_count(cue) > MAX_CUE_WORDS:
            cue = " ".join(cue.split()[:MAX_CUE_WORDS])

        shaped = truncate_words(text, max_words - MAX_CUE_WORDS, cue)
        logger.debug(
            "Advisory truncated",
            language=rules.tag.value,
            original_words=words,
            max_words=max_words,
        )
        return shaped
