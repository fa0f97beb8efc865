"""SM-2 style scheduler with a short-term learning ladder.

Cards pass through a ladder of minute-scale steps before graduating to the
day-scale review phase. A failed review ("Again") sends the card back to
the ladder as a lapse. compute_next() is pure: it never mutates the card
it is given and performs no I/O, so the caller owns persistence.
"""

import dataclasses
import math
from datetime import datetime, timedelta

from koine.config import DEFAULT_CONFIG, SchedulerConfig
from koine.errors import InvalidQuality, ValidationError
from koine.models import Card, Phase, Requeue, ReviewQuality

HARD_EASE_PENALTY = 0.15
LAPSE_EASE_PENALTY = 0.20
EASY_EASE_BONUS = 0.15


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_leech(card: Card, threshold: int = DEFAULT_CONFIG.leech_threshold) -> bool:
    return card.lapses >= threshold


def check_card(card: Card, config: SchedulerConfig = DEFAULT_CONFIG):
    if card.repetitions < 0:
        raise ValidationError(f"Card {card.id}: repetitions is negative")
    if card.lapses < 0:
        raise ValidationError(f"Card {card.id}: lapses is negative")
    if card.interval_days < 0:
        raise ValidationError(f"Card {card.id}: interval_days is negative")
    if card.ease_factor < config.ease_floor - 1e-9:
        raise ValidationError(
            f"Card {card.id}: ease_factor {card.ease_factor} below floor {config.ease_floor}")
    if card.learning_step_index < -1 or card.learning_step_index >= len(config.learning_steps):
        raise ValidationError(
            f"Card {card.id}: learning_step_index {card.learning_step_index} out of range")
    if card.phase == Phase.REVIEW and card.interval_days <= 0:
        raise ValidationError(f"Card {card.id}: review card without a positive interval")


def compute_next(card: Card, quality: int, now: datetime,
                 config: SchedulerConfig = DEFAULT_CONFIG) -> tuple[Card, Requeue | None]:
    """Apply one review. Returns (updated card, requeue directive or None).

    A card left on a step past the end of a shortened ladder is treated as
    being on the last step.
    """
    if isinstance(quality, bool) or quality not in (1, 2, 3, 4):
        raise InvalidQuality(f"Quality must be 1-4, got {quality!r}")
    quality = ReviewQuality(quality)
    last_step = len(config.learning_steps) - 1
    if card.learning_step_index > last_step:
        card = dataclasses.replace(card, learning_step_index=last_step)
    check_card(card, config)

    if card.phase == Phase.NEW:
        card = dataclasses.replace(card, learning_step_index=0)

    if card.learning_step_index >= 0:
        return _learning_step(card, quality, now, config)
    return _review_step(card, quality, now, config)


def _learning_step(card: Card, quality: ReviewQuality, now: datetime,
                   config: SchedulerConfig) -> tuple[Card, Requeue | None]:
    steps = config.learning_steps
    step = card.learning_step_index

    if quality == ReviewQuality.AGAIN:
        step = 0
    elif quality >= ReviewQuality.GOOD:
        step += 1
        if step >= len(steps):
            interval = (config.easy_interval if quality == ReviewQuality.EASY
                        else config.graduating_interval)
            interval = _clamp_interval(interval, config)
            graduated = dataclasses.replace(
                card,
                learning_step_index=-1,
                interval_days=interval,
                repetitions=1,
                due_at=now + timedelta(days=interval),
                last_reviewed_at=now,
            )
            return graduated, None

    delay = steps[step]
    held = dataclasses.replace(
        card,
        learning_step_index=step,
        due_at=now + timedelta(minutes=delay),
        last_reviewed_at=now,
    )
    return held, Requeue(delay_minutes=delay)


def _review_step(card: Card, quality: ReviewQuality, now: datetime,
                 config: SchedulerConfig) -> tuple[Card, Requeue | None]:
    ef = card.ease_factor
    interval = card.interval_days

    if quality == ReviewQuality.AGAIN:
        delay = config.learning_steps[0]
        lapsed = dataclasses.replace(
            card,
            lapses=card.lapses + 1,
            repetitions=0,
            ease_factor=max(config.ease_floor, ef - LAPSE_EASE_PENALTY),
            learning_step_index=0,
            due_at=now + timedelta(minutes=delay),
            last_reviewed_at=now,
        )
        return lapsed, Requeue(delay_minutes=delay)

    if quality == ReviewQuality.HARD:
        interval = round_half_up(interval * config.hard_multiplier)
        ef = max(config.ease_floor, ef - HARD_EASE_PENALTY)
    elif quality == ReviewQuality.GOOD:
        interval = round_half_up(interval * ef)
    else:
        interval = round_half_up(interval * ef * config.easy_bonus)
        ef = ef + EASY_EASE_BONUS

    interval = _clamp_interval(interval, config)
    reviewed = dataclasses.replace(
        card,
        interval_days=interval,
        ease_factor=ef,
        repetitions=card.repetitions + 1,
        due_at=now + timedelta(days=interval),
        last_reviewed_at=now,
    )
    return reviewed, None


def _clamp_interval(days: int, config: SchedulerConfig) -> int:
    return min(config.max_interval_days, max(1, days))


def preview_intervals(card: Card, now: datetime,
                      config: SchedulerConfig = DEFAULT_CONFIG) -> dict[ReviewQuality, str]:
    """Label the next delay each rating would produce, e.g. {AGAIN: "1m", GOOD: "25d"}."""
    labels = {}
    for quality in ReviewQuality:
        updated, requeue = compute_next(card, quality, now, config)
        if requeue is not None:
            labels[quality] = format_minutes(requeue.delay_minutes)
        else:
            labels[quality] = format_days(updated.interval_days)
    return labels


def format_minutes(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}m"
    return f"{round_half_up(minutes / 60)}h"


def format_days(days: int) -> str:
    if days < 30:
        return f"{days}d"
    if days < 365:
        return f"{round_half_up(days / 30)}mo"
    return f"{round_half_up(days / 365)}y"
