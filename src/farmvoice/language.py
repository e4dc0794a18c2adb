"""
Language tables for the voice assistant.

Every supported BCP-47 tag maps to a rule set (word budget, filler phrases,
continuation cue, sample questions and fallback texts). Tags without their own
entry for a field inherit the default language's value.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Mapping, Optional


class LanguageTag(str, Enum):
    HINDI = "hi-IN"
    ENGLISH = "en-IN"
    BENGALI = "bn-IN"
    TELUGU = "te-IN"
    MARATHI = "mr-IN"
    TAMIL = "ta-IN"
    GUJARATI = "gu-IN"
    KANNADA = "kn-IN"
    MALAYALAM = "ml-IN"
    PUNJABI = "pa-IN"
    ODIA = "or-IN"


DEFAULT_LANGUAGE = LanguageTag.ENGLISH
DEFAULT_WORD_BUDGET = 30
MAX_CUE_WORDS = 2


@dataclass(frozen=True)
class LanguageRules:
    """Resolved per-language rule set."""

    tag: LanguageTag
    name: str
    continue_cue: str
    filler_phrases: tuple[str, ...]
    sample_queries: tuple[str, ...]
    fallback_advisory: str
    demo_message: str
    error_message: str


@dataclass(frozen=True)
class _RulesEntry:
    name: str
    word_budget: Optional[int] = None
    continue_cue: Optional[str] = None
    filler_phrases: Optional[tuple[str, ...]] = None
    sample_queries: Optional[tuple[str, ...]] = None
    fallback_advisory: Optional[str] = None
    demo_message: Optional[str] = None
    error_message: Optional[str] = None


_TABLE: dict[LanguageTag, _RulesEntry] = {
    LanguageTag.ENGLISH: _RulesEntry(
        name="English (India)",
        continue_cue="Continue?",
        filler_phrases=(
            "As an AI language model,",
            "Great question!",
            "Hello farmer!",
            "Hello farmer,",
            "Dear farmer,",
            "Of course!",
            "Certainly!",
            "Sure!",
            "I hope this helps.",
            "I understand your problem.",
        ),
        sample_queries=(
            "My wheat crop has yellow spots appearing, what should I do?",
            "The tomato plants are wilting, what could be the problem?",
            "There is a whitefly attack on cotton, how do I control it?",
            "What is the right time for rice sowing?",
            "What is today's onion price in the market?",
            "Leaves are turning yellow due to nutrient deficiency, what fertilizer should I use?",
        ),
        fallback_advisory=(
            "I am here to help you with your farming questions. Please ask me about seeds, "
            "fertilizers, irrigation, pest control, or any other agricultural concerns you may have."
        ),
        demo_message=(
            "I am your FarmMitra. Currently working in demo mode. "
            "Please enable the cloud speech services for full functionality."
        ),
        error_message="Sorry, I had trouble understanding you. Please try again.",
    ),
    LanguageTag.HINDI: _RulesEntry(
        name="Hindi",
        continue_cue="और बताऊं?",
        filler_phrases=(
            "नमस्कार किसान भाई!",
            "नमस्ते किसान भाई!",
            "मैं समझ गया आपकी समस्या।",
            "ज़रूर!",
        ),
        sample_queries=(
            "मेरी गेहूं की फसल में पीले धब्बे आ गए हैं, क्या करना चाहिए?",
            "टमाटर के पौधे मुरझा रहे हैं, क्या समस्या हो सकती है?",
            "कपास में सफेद मक्खी का अटैक है, कैसे रोकूं?",
            "धान की बुआई का सही समय क्या है?",
            "आज मंडी में प्याज का भाव क्या है?",
            "खाद की कमी से पत्ते पीले हो रहे हैं, क्या डालूं?",
        ),
        fallback_advisory=(
            "मैं आपकी मदद करने के लिए यहाँ हूँ। कृपया अपने खेती से जुड़े सवाल पूछें। "
            "चाहे वो बीज, खाद, पानी, या कीड़े-मकोड़े की समस्या हो, मैं आपको सही सलाह दूंगा।"
        ),
        demo_message=(
            "मैं आपका FarmMitra हूँ। अभी मैं डेमो मोड में काम कर रहा हूँ। "
            "पूरी सुविधा के लिए क्लाउड स्पीच सेवाएं सक्रिय करें।"
        ),
        error_message="माफ करें, मुझे आपकी बात समझने में कुछ परेशानी हुई है। कृपया दोबारा कोशिश करें।",
    ),
    LanguageTag.BENGALI: _RulesEntry(
        name="Bengali",
        continue_cue="আরও বলব?",
        filler_phrases=("নমস্কার কৃষক ভাই!",),
        sample_queries=(
            "আমার গমের ফসলে হলুদ দাগ দেখা দিয়েছে, কী করব?",
            "টমেটো গাছ শুকিয়ে যাচ্ছে, সমস্যা কী হতে পারে?",
            "তুলায় সাদা মাছি আক্রমণ করেছে, কীভাবে রোধ করব?",
        ),
        fallback_advisory=(
            "আমি আপনার কৃষি সমস্যার সমাধানে সাহায্য করতে এসেছি। "
            "বীজ, সার, জল বা কীটপতঙ্গ নিয়ন্ত্রণ সম্পর্কে যে কোনো প্রশ্ন করুন।"
        ),
        demo_message=(
            "আমি আপনার FarmMitra। এখন আমি ডেমো মোডে কাজ করছি। "
            "সম্পূর্ণ কার্যকারিতার জন্য ক্লাউড স্পিচ পরিষেবা সক্রিয় করুন।"
        ),
        error_message="দুঃখিত, আমি আপনার কথা বুঝতে সমস্যা হয়েছে। অনুগ্রহ করে আবার চেষ্টা করুন।",
    ),
    LanguageTag.TELUGU: _RulesEntry(
        name="Telugu",
        word_budget=25,
        continue_cue="ఇంకా చెప్పనా?",
        filler_phrases=("నమస్కారం రైతు గారు!",),
        sample_queries=(
            "నా గోధుమ పంటలో పసుపు మచ్చలు కనిపిస్తున్నాయి, ఏమి చేయాలి?",
            "టమాటో మొక్కలు వాడిపోతున్నాయి, సమస్య ఏమిటి?",
            "పత్తిలో తెల్ల ఈగలు దాడి చేస్తున్నాయి, ఎలా నియంత్రించాలి?",
        ),
        fallback_advisory=(
            "నేను మీ వ్యవసాయ సమస్యలకు సహాయం చేయడానికి ఇక్కడ ఉన్నాను. "
            "విత్తనాలు, ఎరువులు, నీటిపారుదల లేదా కీటక నియంత్రణ గురించి ప్రశ్నలు అడగండి."
        ),
        demo_message=(
            "నేను మీ FarmMitra. ప్రస్తుతం డెమో మోడ్‌లో పని చేస్తున్నాను. "
            "పూర్తి కార్యాచరణ కోసం క్లౌడ్ స్పీచ్ సేవలను ప్రారంభించండి."
        ),
        error_message=(
            "క్షమించండి, మీ మాట అర్థం చేసుకోవడంలో నాకు ఇబ్బంది ఉంది. దయచేసి మళ్లీ ప్రయత్నించండి."
        ),
    ),
    LanguageTag.MARATHI: _RulesEntry(
        name="Marathi",
        continue_cue="अजून सांगू?",
        error_message="माफ करा, मला तुमचे म्हणणे समजण्यात अडचण आली आहे. कृपया पुन्हा प्रयत्न करा.",
    ),
    LanguageTag.TAMIL: _RulesEntry(
        name="Tamil",
        word_budget=25,
        continue_cue="தொடரவா?",
        error_message=(
            "மன்னிக்கவும், உங்கள் பேச்சைப் புரிந்துகொள்வதில் எனக்கு சிரமம் ஏற்பட்டது. "
            "தயவுசெய்து மீண்டும் முயற்சிக்கவும்."
        ),
    ),
    LanguageTag.GUJARATI: _RulesEntry(
        name="Gujarati",
        continue_cue="વધુ કહું?",
        error_message="માફ કરશો, મને તમારી વાત સમજવામાં મુશ્કેલી પડી છે. કૃપા કરીને ફરીથી પ્રયાસ કરો.",
    ),
    LanguageTag.KANNADA: _RulesEntry(
        name="Kannada",
        word_budget=25,
        continue_cue="ಮುಂದುವರಿಸಲೇ?",
        error_message=(
            "ಕ್ಷಮಿಸಿ, ನಿಮ್ಮ ಮಾತನ್ನು ಅರ್ಥ ಮಾಡಿಕೊಳ್ಳುವಲ್ಲಿ ನನಗೆ ತೊಂದರೆ ಆಗಿದೆ. ದಯವಿಟ್ಟು ಮತ್ತೆ ಪ್ರಯತ್ನಿಸಿ."
        ),
    ),
    LanguageTag.MALAYALAM: _RulesEntry(
        name="Malayalam",
        word_budget=25,
        continue_cue="തുടരട്ടെ?",
        error_message=(
            "ക്ഷമിക്കണം, നിങ്ങളുടെ സംസാരം മനസ്സിലാക്കാൻ എനിക്ക് ബുദ്ധിമുട്ട് ഉണ്ടായി. "
            "ദയവായി വീണ്ടും ശ്രമിക്കുക."
        ),
    ),
    LanguageTag.PUNJABI: _RulesEntry(
        name="Punjabi",
        continue_cue="ਹੋਰ ਦੱਸਾਂ?",
        error_message="ਮਾਫ਼ ਕਰਨਾ, ਮੈਨੂੰ ਤੁਹਾਡੀ ਗੱਲ ਸਮਝਣ ਵਿੱਚ ਮੁਸ਼ਕਲ ਹੋਈ ਹੈ। ਕਿਰਪਾ ਕਰਕੇ ਦੁਬਾਰਾ ਕੋਸ਼ਿਸ਼ ਕਰੋ।",
    ),
    LanguageTag.ODIA: _RulesEntry(
        name="Odia",
        continue_cue="ଆଉ କହିବି?",
        error_message="ଦୁଃଖିତ, ମୁଁ ଆପଣଙ୍କ କଥା ବୁଝିବାରେ ଅସୁବିଧା ଭୋଗୁଛି। ଦୟାକରି ପୁନର୍ବାର ଚେଷ୍ଟା କରନ୍ତୁ।",
    ),
}

SUPPORTED_LANGUAGES: dict[str, str] = {tag.value: entry.name for tag, entry in _TABLE.items()}


def parse_language_tag(value: Optional[str]) -> Optional[LanguageTag]:
    """
    Normalize a caller-supplied tag ("hi-in", "hi_IN") into a LanguageTag.

    Returns None for anything outside the supported set.
    """
    if not value:
        return None
    norm = value.strip().replace("_", "-").lower()
    for tag in LanguageTag:
        if tag.value.lower() == norm:
            return tag
    return None


def is_supported(value: Optional[str]) -> bool:
    return parse_language_tag(value) is not None


def _resolve(tag: LanguageTag) -> LanguageRules:
    entry = _TABLE.get(tag) or _TABLE[DEFAULT_LANGUAGE]
    default = _TABLE[DEFAULT_LANGUAGE]

    resolved = {}
    for f in fields(_RulesEntry):
        if f.name == "word_budget":
            continue
        value = getattr(entry, f.name)
        resolved[f.name] = value if value else getattr(default, f.name)
    return LanguageRules(tag=tag, **resolved)


_RESOLVED: dict[LanguageTag, LanguageRules] = {tag: _resolve(tag) for tag in LanguageTag}


def get_rules(value: Optional[str]) -> LanguageRules:
    """Rules for a tag; unknown tags get the default language's rules."""
    tag = parse_language_tag(value) or DEFAULT_LANGUAGE
    return _RESOLVED[tag]


def language_name(value: Optional[str]) -> str:
    return get_rules(value).name


@dataclass
class WordBudgets:
    """
    Word budgets per language.

    Table values win over `default`, and `overrides` (from configuration) win
    over both.
    """

    default: int = DEFAULT_WORD_BUDGET
    overrides: Mapping[str, int] = field(default_factory=dict)

    def for_language(self, value: Optional[str]) -> int:
        tag = parse_language_tag(value) or DEFAULT_LANGUAGE
        for key, budget in self.overrides.items():
            if parse_language_tag(key) is tag:
                return max(budget, MAX_CUE_WORDS + 1)
        entry = _TABLE.get(tag)
        if entry is not None and entry.word_budget:
            return entry.word_budget
        return max(self.default, MAX_CUE_WORDS + 1)
