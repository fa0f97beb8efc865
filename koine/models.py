"""Shared data classes used across the algorithm, stores, and sessions."""

import enum
from dataclasses import dataclass, field
from datetime import datetime

VOCAB = "vocab"
GRAMMAR = "grammar"
VERSE = "verse"

# Priority order for interleaving fall-through.
CARD_TYPES = (VOCAB, GRAMMAR, VERSE)

DEFAULT_EASE_FACTOR = 2.5
LEECH_THRESHOLD = 8


class ReviewQuality(enum.IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class Phase(str, enum.Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass
class Card:
    id: str
    card_type: str
    repetitions: int = 0
    interval_days: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    due_at: datetime | None = None
    lapses: int = 0
    learning_step_index: int = -1
    last_reviewed_at: datetime | None = None
    attributes: dict = field(default_factory=dict)

    @property
    def phase(self) -> Phase:
        if self.learning_step_index >= 0:
            return Phase.RELEARNING if self.interval_days > 0 else Phase.LEARNING
        if self.repetitions == 0 and self.last_reviewed_at is None:
            return Phase.NEW
        return Phase.REVIEW

    @property
    def is_leech(self) -> bool:
        return self.lapses >= LEECH_THRESHOLD


@dataclass(frozen=True)
class Requeue:
    delay_minutes: int


@dataclass
class StudyQueueEntry:
    card_type: str
    card: Card

    @property
    def card_id(self) -> str:
        return self.card.id


@dataclass
class LearningHold:
    entry: StudyQueueEntry
    due_at: datetime
    seq: int = 0


@dataclass
class QueueStats:
    total: int
    remaining: int
    new_count: int
    review_count: int
    learning_count: int
