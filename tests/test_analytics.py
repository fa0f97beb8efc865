"""Tests for progress reporting."""

import math
from datetime import date, timedelta

import pytest

from koine.analytics import (calculate_retention, days_until_forgotten, estimate_stability,
                             leech_count, leech_status, optimal_review_counts, phase_counts,
                             retention_predictions, retention_rate, review_forecast,
                             weak_points)
from koine.models import Phase


def test_retention_rate(make_card, make_review_card):
    cards = [
        make_review_card(repetitions=3, lapses=1),
        make_review_card(repetitions=1, lapses=0),
        make_card(),
    ]
    assert retention_rate(cards) == pytest.approx(80.0)


def test_retention_rate_without_reviews(make_card):
    assert retention_rate([]) == 0.0
    assert retention_rate([make_card(), make_card()]) == 0.0


def test_review_forecast(clock, make_card, make_review_card):
    today = clock.now().date()
    cards = [
        make_review_card(overdue_days=5),
        make_review_card(overdue_days=-2),
        make_review_card(overdue_days=-2),
        make_review_card(overdue_days=-30),
        make_card(),
    ]
    forecast = review_forecast(cards, 7, today)
    assert len(forecast) == 7
    assert forecast[0] == (today, 1)
    assert dict(forecast)[today + timedelta(days=2)] == 2
    assert sum(count for _, count in forecast) == 3


def test_review_forecast_defaults_to_today():
    forecast = review_forecast([], 3)
    assert forecast[0][0] == date.today()


def test_phase_counts(make_card, make_review_card):
    cards = [make_card(), make_card(), make_card(learning_step_index=0),
             make_review_card(), make_review_card(learning_step_index=0)]
    counts = phase_counts(cards)
    assert counts == {Phase.NEW: 2, Phase.LEARNING: 1, Phase.REVIEW: 1, Phase.RELEARNING: 1}


def test_leech_count(make_review_card):
    cards = [make_review_card(lapses=n) for n in (0, 4, 8, 12)]
    assert leech_count(cards) == 2
    assert leech_count(cards, threshold=4) == 3


def test_leech_status(make_review_card):
    assert leech_status(make_review_card(lapses=4)).message == ""
    struggling = leech_status(make_review_card(lapses=5))
    assert not struggling.is_leech
    assert struggling.message == "Struggling card"
    leech = leech_status(make_review_card(lapses=8))
    assert leech.is_leech
    assert "rephras" in leech.message
    assert leech_status(make_review_card(lapses=6), threshold=6).is_leech


# --- Memory estimates ---

def test_calculate_retention(clock):
    now = clock.now()
    assert calculate_retention(None, 10.0, now) == 0.0
    assert calculate_retention(now, 10.0, now) == 100.0
    assert calculate_retention(now - timedelta(days=2), 2.0, now) == pytest.approx(
        100 * math.exp(-1))
    # stability is floored at 0.1 day
    assert calculate_retention(now - timedelta(days=1), 0.0, now) == pytest.approx(
        100 * math.exp(-10))


def test_estimate_stability(make_review_card):
    card = make_review_card(repetitions=1, interval_days=10)
    assert estimate_stability(card) == pytest.approx(15.0)
    lapsed = make_review_card(repetitions=1, interval_days=10, lapses=1)
    assert estimate_stability(lapsed) == pytest.approx(15.0 / 1.3)
    easier = make_review_card(repetitions=3, interval_days=10, ease_factor=3.0)
    assert estimate_stability(easier) == pytest.approx(15.0 * 1.2 * 2)


def test_days_until_forgotten():
    assert days_until_forgotten(40, 10.0) == 0
    assert days_until_forgotten(50, 10.0) == 0
    assert days_until_forgotten(100, 10.0) == 7
    assert days_until_forgotten(75, 10.0) == 5
    assert days_until_forgotten(100, 10.0, threshold=90) == 2


def test_retention_predictions(clock, make_card, make_review_card):
    now = clock.now()
    fresh = make_review_card(card_id="fresh", last_reviewed_at=now - timedelta(days=1))
    stale = make_review_card(card_id="stale", last_reviewed_at=now - timedelta(days=30))
    cards = [fresh, stale, make_card()]

    predictions = retention_predictions(cards, now)
    assert [p.card_id for p in predictions] == ["stale", "fresh"]
    assert predictions[0].label == "λόγος"
    assert predictions[0].retention < predictions[1].retention
    assert predictions[0].days_until_forgotten == 0
    assert predictions[0].optimal_review_at == now
    assert predictions[1].optimal_review_at == now + timedelta(
        days=predictions[1].days_until_forgotten - 1)
    assert [p.card_id for p in retention_predictions(cards, now, limit=1)] == ["stale"]


def test_optimal_review_counts(clock, make_card, make_review_card):
    now = clock.now()
    cards = [
        # below 50% retention
        make_review_card(repetitions=1, interval_days=1, last_reviewed_at=now - timedelta(days=10)),
        # best reviewed today
        make_review_card(repetitions=1, interval_days=1, last_reviewed_at=now - timedelta(hours=12)),
        # best reviewed in four days
        make_review_card(repetitions=1, interval_days=4, last_reviewed_at=now),
        # safe for two months
        make_review_card(repetitions=3, interval_days=30, last_reviewed_at=now),
        make_card(),
    ]
    assert optimal_review_counts(cards, now) == {"urgent": 1, "recommended": 1, "optional": 1}
    assert optimal_review_counts([], now) == {"urgent": 0, "recommended": 0, "optional": 0}


# --- Weak points ---

def _vocab(make_card, pos, chapter, lapses, ease=2.5):
    return make_card("vocab", lapses=lapses, ease_factor=ease,
                     attributes={"greek": "x", "part_of_speech": pos, "mounce_chapter": chapter})


def test_weak_points(make_card):
    cards = [
        _vocab(make_card, "verb", 4, 3, 1.9),
        _vocab(make_card, "verb", 4, 4, 2.0),
        _vocab(make_card, "verb", 4, 0, 2.5),
        _vocab(make_card, "noun", 0, 0),
        _vocab(make_card, "noun", 0, 1),
        _vocab(make_card, "noun", 0, 2),
        _vocab(make_card, "", 0, 0),
        make_card("grammar", attributes={"grammar_type": "parsing"}),
        make_card("grammar", attributes={"grammar_type": "parsing"}, lapses=1),
        make_card("grammar", attributes={"grammar_type": "parsing"}, lapses=1),
    ]
    points = weak_points(cards)
    by_category = {p.category: p for p in points}
    assert set(by_category) == {"verb", "Mounce Ch. 4", "noun", "parsing"}

    verb = by_category["verb"]
    assert verb.category_type == "part_of_speech"
    assert verb.total_cards == 3
    assert verb.avg_lapses == 2.3
    assert verb.avg_ease == 2.13
    assert verb.accuracy == 33
    assert verb.needs_work

    noun = by_category["noun"]
    assert noun.accuracy == 67
    assert not noun.needs_work
    assert by_category["Mounce Ch. 4"].category_type == "mounce_chapter"
    assert by_category["parsing"].category_type == "grammar_type"
    assert by_category["parsing"].accuracy == 100

    assert [p.needs_work for p in points] == [True, True, False, False]
    assert points[2].category == "noun"


def test_weak_points_skips_small_categories(make_card):
    cards = [_vocab(make_card, "verb", 4, 5) for _ in range(2)]
    assert weak_points(cards) == []
