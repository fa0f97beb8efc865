"""Study filters: which cards a session may draw from.

Vocabulary cards carry part_of_speech, frequency and mounce_chapter
attributes; grammar cards carry grammar_type and optional mood, tense and
voice. A card enters a queue only if its type predicate and the SRS-status
predicate both accept it.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Callable

from koine.errors import ValidationError
from koine.models import CARD_TYPES, GRAMMAR, VERSE, VOCAB, Card, Phase

PARTS_OF_SPEECH = frozenset({
    "noun", "verb", "adjective", "adverb", "pronoun", "preposition",
    "conjunction", "particle", "article", "other",
})
GRAMMAR_TYPES = frozenset({"parsing", "declension", "conjugation", "syntax"})
MOODS = frozenset({"indicative", "subjunctive", "optative", "imperative",
                   "infinitive", "participle"})
TENSES = frozenset({"present", "imperfect", "future", "aorist", "perfect", "pluperfect"})
VOICES = frozenset({"active", "middle", "passive"})


@dataclass
class StudyFilters:
    card_types: dict = field(default_factory=lambda: {t: True for t in CARD_TYPES})
    parts_of_speech: frozenset = PARTS_OF_SPEECH
    frequency_min: int = 0
    frequency_max: float = math.inf
    mounce_chapters: frozenset = frozenset()  # empty means every chapter
    grammar_types: frozenset = GRAMMAR_TYPES
    moods: frozenset = MOODS
    tenses: frozenset = TENSES
    voices: frozenset = VOICES
    include_new: bool = True
    include_learning: bool = True
    include_review: bool = True
    include_leeches: bool = True

    def enabled_types(self) -> list[str]:
        return [t for t in CARD_TYPES if self.card_types.get(t, False)]

    def validate(self):
        unknown = set(self.card_types) - set(CARD_TYPES)
        if unknown:
            raise ValidationError(f"Unknown card types: {sorted(unknown)}")
        for name, allowed in (("parts_of_speech", PARTS_OF_SPEECH),
                              ("grammar_types", GRAMMAR_TYPES),
                              ("moods", MOODS), ("tenses", TENSES), ("voices", VOICES)):
            extra = set(getattr(self, name)) - allowed
            if extra:
                raise ValidationError(f"Unknown {name}: {sorted(extra)}")
        if self.frequency_min < 0:
            raise ValidationError(f"frequency_min is negative: {self.frequency_min}")
        if self.frequency_min > self.frequency_max:
            raise ValidationError(
                f"frequency range is empty: {self.frequency_min}-{self.frequency_max}")


def normalize_part_of_speech(pos: str) -> str:
    """Map detailed parts of speech ("personal pronoun") onto filter categories."""
    pos = (pos or "").lower()
    if "pronoun" in pos:
        return "pronoun"
    # "adverb" contains "verb"
    for category in ("adverb", "adjective", "noun", "verb", "preposition",
                     "conjunction", "particle", "article"):
        if category in pos:
            return category
    return "other"


def matches_vocab_filters(card: Card, filters: StudyFilters) -> bool:
    attrs = card.attributes
    if normalize_part_of_speech(attrs.get("part_of_speech", "")) not in filters.parts_of_speech:
        return False
    frequency = attrs.get("frequency", 0) or 0
    if frequency < filters.frequency_min or frequency > filters.frequency_max:
        return False
    chapter = attrs.get("mounce_chapter")
    if filters.mounce_chapters and chapter and chapter not in filters.mounce_chapters:
        return False
    return True


def matches_grammar_filters(card: Card, filters: StudyFilters) -> bool:
    attrs = card.attributes
    if attrs.get("grammar_type") not in filters.grammar_types:
        return False
    # Components only constrain the card when present.
    for key, allowed in (("mood", filters.moods), ("tense", filters.tenses),
                         ("voice", filters.voices)):
        value = attrs.get(key)
        if value and value not in allowed:
            return False
    return True


def matches_verse_filters(card: Card, filters: StudyFilters) -> bool:
    return True


def matches_srs_filters(card: Card, filters: StudyFilters) -> bool:
    if card.is_leech and not filters.include_leeches:
        return False
    phase = card.phase
    if phase == Phase.NEW:
        return filters.include_new
    if phase in (Phase.LEARNING, Phase.RELEARNING):
        return filters.include_learning
    return filters.include_review


TYPE_PREDICATES: dict[str, Callable[[Card, StudyFilters], bool]] = {
    VOCAB: matches_vocab_filters,
    GRAMMAR: matches_grammar_filters,
    VERSE: matches_verse_filters,
}


def only_types(*card_types: str) -> dict:
    return {t: t in card_types for t in CARD_TYPES}


BUILT_IN_PRESETS: dict[str, StudyFilters] = {
    "all": StudyFilters(),
    "vocab": StudyFilters(card_types=only_types(VOCAB)),
    "grammar": StudyFilters(card_types=only_types(GRAMMAR)),
    "verses": StudyFilters(card_types=only_types(VERSE)),
    "indicative": StudyFilters(card_types=only_types(GRAMMAR), moods=frozenset({"indicative"})),
    "high-frequency": StudyFilters(card_types=only_types(VOCAB), frequency_min=50),
    "nouns": StudyFilters(card_types=only_types(VOCAB), parts_of_speech=frozenset({"noun"})),
    "verbs": StudyFilters(card_types=only_types(VOCAB), parts_of_speech=frozenset({"verb"})),
    "aorist": StudyFilters(card_types=only_types(GRAMMAR), tenses=frozenset({"aorist"})),
    "reviews-only": StudyFilters(include_new=False, include_learning=False),
}


def get_preset(name: str) -> StudyFilters:
    try:
        preset = BUILT_IN_PRESETS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown preset '{name}' (choose from {', '.join(sorted(BUILT_IN_PRESETS))})") from None
    return dataclasses.replace(preset, card_types=dict(preset.card_types))
