"""Tests for the App wiring object."""

import random

from koine.app import App
from koine.config import SchedulerConfig
from koine.filters import StudyFilters
from koine.models import ReviewQuality
from koine.session import SessionScheduler
from koine.store import SqliteCardStore


def test_app_defaults(app):
    assert isinstance(app.store, SqliteCardStore)
    assert app.study_settings().new_cards_per_day == 20
    assert app.scheduler_config() == SchedulerConfig()


def test_app_reads_settings_file(tmp_path):
    (tmp_path / "settings.toml").write_text(
        "new_cards_per_day = 8\nlearning_steps = [2, 15]\n")
    a = App(data_dir=tmp_path)
    assert a.study_settings().new_cards_per_day == 8
    assert a.scheduler_config().learning_steps == (2, 15)


def test_init_db_default_path(tmp_path):
    a = App(data_dir=tmp_path)
    a.init_db()
    assert (tmp_path / "koine.db").exists()
    a.close()
    assert a.conn is None
    assert a.store is None


def test_new_session_uses_app_store_and_clock(app, make_card, clock):
    app.store.add(make_card("vocab", card_id="v1"))
    session = app.new_session(rng=random.Random(1))
    assert isinstance(session, SessionScheduler)
    queue = session.build(StudyFilters(), app.study_settings())
    assert [e.card_id for e in queue] == ["v1"]
    session.review(ReviewQuality.AGAIN)
    assert app.store.get("v1").last_reviewed_at == clock.now()
