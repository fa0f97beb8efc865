"""App: central object that wires together data dir, settings, db, and store."""

import pathlib
import sqlite3

from koine.clock import SystemClock
from koine.config import (get_data_dir, load_settings, scheduler_config_from_dict,
                          settings_from_dict)
from koine.db import init_db
from koine.queue_builder import QueueBuilder
from koine.session import SessionScheduler
from koine.store import SqliteCardStore


class App:
    """Holds the shared state for a koine process.

    Usage:
        app = App(data_dir="/path/to/koine")
        app.init_db()                    # uses data_dir/koine.db
        session = app.new_session()
        session.build(filters, app.study_settings())
        app.close()

    For testing:
        app = App(data_dir=tmp_path, clock=FixedClock())
        app.init_db(":memory:")
    """

    def __init__(self, data_dir: pathlib.Path | str | None = None, clock=None):
        if data_dir is None:
            data_dir = get_data_dir()
        self.data_dir = pathlib.Path(data_dir)
        self.settings = load_settings(self.data_dir)
        self.clock = clock or SystemClock()
        self.conn: sqlite3.Connection | None = None
        self.store: SqliteCardStore | None = None

    def init_db(self, db_path: pathlib.Path | str | None = None) -> sqlite3.Connection:
        if db_path is None:
            db_path = self.data_dir / "koine.db"
        self.conn = init_db(db_path)
        self.store = SqliteCardStore(self.conn)
        return self.conn

    def study_settings(self):
        return settings_from_dict(self.settings)

    def scheduler_config(self):
        return scheduler_config_from_dict(self.settings)

    def new_session(self, rng=None) -> SessionScheduler:
        builder = QueueBuilder(self.store, self.clock, rng=rng)
        return SessionScheduler(self.store, self.clock, self.scheduler_config(), builder)

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
            self.store = None
