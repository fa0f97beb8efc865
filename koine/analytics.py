"""Progress reporting over a collection of cards.

Memory estimates follow a simple exponential forgetting curve,
R = exp(-t / S), where t is days since the last review and S is a stability
estimated from the card's interval, ease, repetitions and lapses.
"""

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from koine.algorithm import is_leech, round_half_up
from koine.models import GRAMMAR, LEECH_THRESHOLD, VOCAB, Card, Phase

STABILITY_MULTIPLIER = 1.5
FORGOTTEN_THRESHOLD = 50
STRUGGLING_THRESHOLD = 5
MIN_CATEGORY_SIZE = 3
WEAK_AVG_LAPSES = 2
WEAK_AVG_EASE = 2.3


@dataclass
class RetentionPrediction:
    card_id: str
    card_type: str
    label: str
    retention: int
    days_until_forgotten: int
    optimal_review_at: datetime
    stability: float


@dataclass
class WeakPoint:
    category: str
    category_type: str  # part_of_speech, mounce_chapter or grammar_type
    total_cards: int
    avg_lapses: float
    avg_ease: float
    accuracy: int  # percent of cards with fewer than 2 lapses
    needs_work: bool


@dataclass(frozen=True)
class LeechStatus:
    is_leech: bool
    message: str


def retention_rate(cards: list[Card]) -> float:
    """Percent of recorded reviews that were not lapses, over cards seen at least once."""
    reviewed = [c for c in cards if c.repetitions > 0]
    total_reps = sum(c.repetitions for c in reviewed)
    total_lapses = sum(c.lapses for c in reviewed)
    if total_reps + total_lapses == 0:
        return 0.0
    return total_reps / (total_reps + total_lapses) * 100


def review_forecast(cards: list[Card], days: int = 7,
                    today: date | None = None) -> list[tuple[date, int]]:
    """Number of cards falling due on each of the next `days` days.

    Cards overdue before `today` are counted on `today`. New cards are skipped.
    """
    if today is None:
        today = date.today()
    counts = {today + timedelta(days=i): 0 for i in range(days)}
    for card in cards:
        if card.due_at is None or card.phase == Phase.NEW:
            continue
        day = max(card.due_at.date(), today)
        if day in counts:
            counts[day] += 1
    return sorted(counts.items())


def phase_counts(cards: list[Card]) -> dict[Phase, int]:
    counts = Counter(c.phase for c in cards)
    return {phase: counts.get(phase, 0) for phase in Phase}


def leech_count(cards: list[Card], threshold: int | None = None) -> int:
    if threshold is None:
        return sum(1 for c in cards if c.is_leech)
    return sum(1 for c in cards if is_leech(c, threshold))


def leech_status(card: Card, threshold: int = LEECH_THRESHOLD) -> LeechStatus:
    if is_leech(card, threshold):
        return LeechStatus(True, "Difficult card: consider rephrasing it")
    if card.lapses >= STRUGGLING_THRESHOLD:
        return LeechStatus(False, "Struggling card")
    return LeechStatus(False, "")


def calculate_retention(last_reviewed_at: datetime | None, stability: float,
                        now: datetime) -> float:
    """Estimated recall probability in percent, 0 for a card never reviewed."""
    if last_reviewed_at is None:
        return 0.0
    days = (now - last_reviewed_at).total_seconds() / 86400
    retention = math.exp(-days / max(stability, 0.1)) * 100
    return min(100.0, max(0.0, retention))


def estimate_stability(card: Card) -> float:
    base = card.interval_days * STABILITY_MULTIPLIER
    ease = card.ease_factor / 2.5
    reps = math.log2(card.repetitions + 1)
    lapse_penalty = 1 / (1 + card.lapses * 0.3)
    return base * ease * reps * lapse_penalty


def days_until_forgotten(retention: float, stability: float,
                         threshold: float = FORGOTTEN_THRESHOLD) -> int:
    if retention <= threshold:
        return 0
    t = -stability * math.log(threshold / 100)
    current = -stability * math.log(retention / 100)
    return max(0, math.ceil(t - current))


def retention_predictions(cards: list[Card], now: datetime,
                          limit: int = 20) -> list[RetentionPrediction]:
    """Cards most at risk of being forgotten, lowest retention first.

    Cards with no recorded repetitions are skipped.
    """
    predictions = []
    for card in cards:
        if card.repetitions == 0:
            continue
        stability = estimate_stability(card)
        retention = calculate_retention(card.last_reviewed_at, stability, now)
        days_left = days_until_forgotten(retention, stability)
        predictions.append(RetentionPrediction(
            card_id=card.id,
            card_type=card.card_type,
            label=_label(card),
            retention=round_half_up(retention),
            days_until_forgotten=days_left,
            optimal_review_at=now + timedelta(days=max(0, days_left - 1)),
            stability=stability,
        ))
    predictions.sort(key=lambda p: p.retention)
    return predictions[:limit]


def optimal_review_counts(cards: list[Card], now: datetime) -> dict[str, int]:
    """Bucket the 100 most at-risk cards into urgent, recommended and optional.

    Urgent cards are under 50% retention. Recommended cards should be seen by
    tomorrow, optional ones within the week.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)
    counts = {"urgent": 0, "recommended": 0, "optional": 0}
    for pred in retention_predictions(cards, now, limit=100):
        if pred.retention < FORGOTTEN_THRESHOLD:
            counts["urgent"] += 1
        elif pred.optimal_review_at <= tomorrow:
            counts["recommended"] += 1
        elif pred.optimal_review_at <= next_week:
            counts["optional"] += 1
    return counts


def weak_points(cards: list[Card]) -> list[WeakPoint]:
    """Categories with high lapse counts or low ease, weakest first.

    Vocabulary is grouped by part of speech and by Mounce chapter, grammar by
    grammar type. Categories with fewer than 3 cards are left out.
    """
    groups = defaultdict(list)
    for card in cards:
        attrs = card.attributes
        if card.card_type == VOCAB:
            groups[("part_of_speech", attrs.get("part_of_speech") or "unknown")].append(card)
            chapter = attrs.get("mounce_chapter") or 0
            if chapter:
                groups[("mounce_chapter", f"Mounce Ch. {chapter}")].append(card)
        elif card.card_type == GRAMMAR:
            groups[("grammar_type", attrs.get("grammar_type") or "unknown")].append(card)

    points = []
    for (category_type, category), members in groups.items():
        if len(members) < MIN_CATEGORY_SIZE:
            continue
        avg_lapses = sum(c.lapses for c in members) / len(members)
        avg_ease = sum(c.ease_factor for c in members) / len(members)
        accuracy = sum(1 for c in members if c.lapses < 2) / len(members) * 100
        points.append(WeakPoint(
            category=category,
            category_type=category_type,
            total_cards=len(members),
            avg_lapses=round_half_up(avg_lapses * 10) / 10,
            avg_ease=round_half_up(avg_ease * 100) / 100,
            accuracy=round_half_up(accuracy),
            needs_work=avg_lapses > WEAK_AVG_LAPSES or avg_ease < WEAK_AVG_EASE,
        ))
    points.sort(key=lambda p: (not p.needs_work, p.accuracy))
    return points


def _label(card: Card) -> str:
    attrs = card.attributes
    if card.card_type == VOCAB:
        return attrs.get("greek") or attrs.get("lemma") or card.id
    if card.card_type == GRAMMAR:
        return attrs.get("grammar_type") or "grammar"
    return attrs.get("reference") or card.id
