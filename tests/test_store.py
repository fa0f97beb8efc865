"""Tests for the in-memory and SQLite card stores."""

from datetime import timedelta

import pytest

from koine.errors import StoreError
from koine.store import MemoryCardStore, SqliteCardStore, format_time, parse_time


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, db_conn):
    if request.param == "memory":
        return MemoryCardStore()
    return SqliteCardStore(db_conn)


def test_fetch_new_in_insertion_order(any_store, make_card):
    for i in range(5):
        any_store.add(make_card("vocab", card_id=f"v{i}"))
    any_store.add(make_card("grammar", card_id="g0"))
    assert [c.id for c in any_store.fetch_new("vocab", 3)] == ["v0", "v1", "v2"]
    assert [c.id for c in any_store.fetch_new("grammar", 10)] == ["g0"]


def test_fetch_new_zero_limit(any_store, make_card):
    any_store.add(make_card())
    assert any_store.fetch_new("vocab", 0) == []


def test_fetch_due_excludes_new_and_future(any_store, make_card, make_review_card, clock):
    any_store.add(make_card(card_id="new"))
    any_store.add(make_review_card(card_id="late", overdue_days=3))
    any_store.add(make_review_card(card_id="soon", overdue_days=1))
    any_store.add(make_review_card(card_id="future", overdue_days=-2))
    due = any_store.fetch_due("vocab", clock.now())
    assert [c.id for c in due] == ["late", "soon"]


def test_fetch_due_includes_learning_cards(any_store, make_card, clock):
    any_store.add(make_card(card_id="l1", learning_step_index=0,
                            due_at=clock.now() - timedelta(minutes=1),
                            last_reviewed_at=clock.now() - timedelta(minutes=2)))
    assert [c.id for c in any_store.fetch_due("vocab", clock.now())] == ["l1"]


def test_save_and_get_round_trip(any_store, make_review_card, clock):
    card = make_review_card(card_id="v1", lapses=2, ease_factor=2.2)
    any_store.add(card)
    card.interval_days = 14
    card.due_at = clock.now() + timedelta(days=14)
    any_store.save(card)
    loaded = any_store.get("v1")
    assert loaded == card
    assert loaded.attributes["greek"] == "λόγος"


def test_save_unknown_card_adds_it(any_store, make_card):
    any_store.save(make_card(card_id="x"))
    assert any_store.get("x") is not None


def test_get_missing(any_store):
    assert any_store.get("nope") is None


def test_add_duplicate_raises(any_store, make_card):
    any_store.add(make_card(card_id="v1"))
    with pytest.raises(StoreError):
        any_store.add(make_card(card_id="v1"))


def test_all_cards_by_type(any_store, make_card):
    any_store.add(make_card("vocab"))
    any_store.add(make_card("verse"))
    assert len(any_store.all_cards()) == 2
    assert [c.card_type for c in any_store.all_cards("verse")] == ["verse"]


def test_memory_store_returns_copies(make_card):
    store = MemoryCardStore([make_card(card_id="v1")])
    fetched = store.fetch_new("vocab", 1)[0]
    fetched.repetitions = 9
    fetched.attributes["gloss"] = "changed"
    assert store.get("v1").repetitions == 0
    assert store.get("v1").attributes["gloss"] == "word"


def test_sqlite_errors_become_store_errors(db_conn, clock):
    store = SqliteCardStore(db_conn)
    db_conn.close()
    with pytest.raises(StoreError):
        store.fetch_due("vocab", clock.now())


def test_time_format_round_trip(clock):
    assert parse_time(format_time(clock.now())) == clock.now()
    assert format_time(None) is None
    assert parse_time("") is None
