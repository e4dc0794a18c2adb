"""
Advisory prompt construction.

Pure string composition: the same inputs always produce the same prompt.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import structlog

from src.farmvoice.language import WordBudgets, get_rules
from src.farmvoice.voice_types import ConversationTurn, VoiceContext

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_TURNS = 10

PERSONA_PREAMBLE = """You are "FarmMitra", an expert agricultural advisor with 20+ years of experience helping Indian farmers. You understand:

CROPS: Wheat, Rice, Cotton, Sugarcane, Corn, Vegetables, Fruits, Pulses, Oilseeds
PESTS: Bollworm, Aphids, Whitefly, Stem borer, Leaf curl virus, Bacterial blight
TREATMENTS: Neem oil, Copper fungicide, Imidacloprid, Carbendazim, Bio-pesticides
SEASONS: Kharif (June-Oct), Rabi (Nov-April), Zaid (April-June)
WEATHER: Monsoon patterns, drought management, flood protection
SCHEMES: PM-KISAN, Crop insurance, Soil health cards, DBT"""

MOCK_PREAMBLE = """You are "FarmMitra", an expert agricultural advisor with deep knowledge of Indian farming.

EXPERTISE AREAS:
Crops: Rice, Wheat, Cotton, Sugarcane, Vegetables, Fruits
Pest Control: Bollworm, Aphids, Fungal diseases, Bacterial infections
Treatments: Organic & chemical solutions with proper dosages
Weather: Monsoon, drought, temperature management
Economics: Market prices, government schemes, cost optimization"""


def _context_line(context: VoiceContext) -> str:
    return (
        f"Location: {context.location} | Season: {context.season} | "
        f"Crop: {context.crop} | Experience: {context.experience_level.prompt_label}"
    )


class PromptBuilder:
    """Builds the text prompt sent to the generative backend."""

    def __init__(
        self,
        budgets: Optional[WordBudgets] = None,
        max_history_turns: int = DEFAULT_HISTORY_TURNS,
    ):
        self.budgets = budgets or WordBudgets()
        self.max_history_turns = max(0, max_history_turns)

    def recent_turns(self, prior_turns: Optional[Iterable[Any]]) -> List[ConversationTurn]:
        """Last N turns, coerced to ConversationTurn. Empty or malformed turns are dropped."""
        if not prior_turns or self.max_history_turns == 0:
            return []

        turns: List[ConversationTurn] = []
        skipped = 0
        for turn in prior_turns:
            try:
                coerced = ConversationTurn.coerce(turn)
            except TypeError:
                skipped += 1
                continue
            if coerced.content.strip():
                turns.append(coerced)

        if skipped:
            logger.warning("Skipped malformed conversation turns", skipped=skipped)
        return turns[-self.max_history_turns:]

    def build(
        self,
        user_query: str,
        context: Optional[VoiceContext],
        language_tag: str,
        prior_turns: Optional[Iterable[Any]] = None,
    ) -> str:
        context = context or VoiceContext()
        language = get_rules(language_tag).name
        max_words = self.budgets.for_language(language_tag)

        sections = [
            PERSONA_PREAMBLE,
            f"FARMER CONTEXT:\n{_context_line(context)}",
        ]

        history = self.recent_turns(prior_turns)
        if history:
            lines = "\n".join(f"{t.role}: {t.content.strip()}" for t in history)
            sections.append(f"PREVIOUS CONVERSATION:\n{lines}")

        sections.append(f'FARMER\'S QUESTION: "{user_query.strip()}"')
        sections.append(
            "ANALYSIS: First, identify if this is about:\n"
            "- Pest/Disease (symptoms, treatment, prevention)\n"
            "- Crop Management (planting, irrigation, harvesting)\n"
            "- Market/Prices (selling, buying, storage)\n"
            "- Weather/Climate (rain, drought, temperature)\n"
            "- Government Schemes (subsidies, loans, insurance)\n"
            "- General Farming (seeds, fertilizers, equipment)"
        )
        sections.append(
            "RESPONSE GUIDELINES:\n"
            f"- Use ONLY {language} language - simple, farmer-friendly words\n"
            "- Give specific, actionable steps with quantities/timing\n"
            "- Mention cost-effective solutions available locally\n"
            "- No greetings, no filler, no bullet points (the answer is spoken aloud)\n"
            f"- HARD LIMIT: at most {max_words} words"
        )
        sections.append(f"Now respond as FarmMitra in {language}:")

        return "\n\n".join(sections)

    def build_mock(
        self,
        user_query: str,
        context: Optional[VoiceContext],
        language_tag: str,
    ) -> str:
        """Shorter prompt used by the fallback engine for a sample question."""
        context = context or VoiceContext()
        language = get_rules(language_tag).name
        max_words = self.budgets.for_language(language_tag)

        return "\n\n".join(
            [
                MOCK_PREAMBLE,
                f"CONTEXT:\n{_context_line(context)}",
                f'FARMER ASKS: "{user_query.strip()}"',
                "INSTRUCTIONS:\n"
                f"- Respond ONLY in {language}\n"
                "- Give specific, actionable advice\n"
                "- Be encouraging and practical\n"
                f"- Keep the response under {max_words} words",
                f"Respond as expert FarmMitra in {language}:",
            ]
        )
