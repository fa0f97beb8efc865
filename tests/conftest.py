"""Shared test fixtures."""

import itertools
from datetime import timedelta

import pytest

from koine.app import App
from koine.clock import FixedClock
from koine.db import init_db
from koine.models import GRAMMAR, VERSE, VOCAB, Card
from koine.store import MemoryCardStore, SqliteCardStore

DEFAULT_ATTRIBUTES = {
    VOCAB: {"greek": "λόγος", "gloss": "word", "part_of_speech": "noun", "frequency": 330},
    GRAMMAR: {"question": "λύει", "answer": "PAI3S", "grammar_type": "parsing",
              "mood": "indicative", "tense": "present", "voice": "active"},
    VERSE: {"reference": "John 1:1", "text": "Ἐν ἀρχῇ ἦν ὁ λόγος"},
}


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return MemoryCardStore()


@pytest.fixture
def db_conn():
    """In-memory SQLite database with schema applied."""
    conn = init_db(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def sqlite_store(db_conn):
    return SqliteCardStore(db_conn)


@pytest.fixture
def make_card():
    """Factory for cards with unique ids and realistic attributes."""
    counter = itertools.count(1)

    def _make(card_type=VOCAB, card_id=None, **fields):
        if card_id is None:
            card_id = f"{card_type}-{next(counter)}"
        fields.setdefault("attributes", dict(DEFAULT_ATTRIBUTES[card_type]))
        return Card(id=card_id, card_type=card_type, **fields)

    return _make


@pytest.fixture
def make_review_card(make_card, clock):
    """Factory for graduated cards that are already due."""
    def _make(card_type=VOCAB, overdue_days=1, **fields):
        fields.setdefault("repetitions", 2)
        fields.setdefault("interval_days", 6)
        fields.setdefault("last_reviewed_at", clock.now() - timedelta(days=7))
        fields.setdefault("due_at", clock.now() - timedelta(days=overdue_days))
        return make_card(card_type, **fields)

    return _make


@pytest.fixture
def app(tmp_path, clock):
    """App instance with tmp data dir and in-memory DB."""
    a = App(data_dir=tmp_path, clock=clock)
    a.init_db(":memory:")
    yield a
    a.close()
