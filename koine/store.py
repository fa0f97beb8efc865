"""Card stores: durable owners of each card's SRS fields.

A store is any object with fetch_due(card_type, now), fetch_new(card_type,
limit) and save(card). Sessions and queue builders only use those three;
get/add/all_cards serve import, export and reporting.
"""

import copy
import json
import sqlite3
from datetime import datetime, timezone

from koine.errors import StoreError
from koine.models import Card, Phase

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIME_FORMAT)


def parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, TIME_FORMAT).replace(tzinfo=timezone.utc)


class MemoryCardStore:
    """Dict-backed store. Hands out copies so callers never alias stored state."""

    def __init__(self, cards: list[Card] | None = None):
        self._cards: dict[str, Card] = {}
        for card in cards or []:
            self.add(card)

    def add(self, card: Card):
        if card.id in self._cards:
            raise StoreError(f"Card already exists: {card.id}")
        self._cards[card.id] = copy.deepcopy(card)

    def get(self, card_id: str) -> Card | None:
        card = self._cards.get(card_id)
        return copy.deepcopy(card) if card else None

    def all_cards(self, card_type: str | None = None) -> list[Card]:
        return [copy.deepcopy(c) for c in self._cards.values()
                if card_type is None or c.card_type == card_type]

    def fetch_due(self, card_type: str, now: datetime) -> list[Card]:
        due = [c for c in self._cards.values()
               if c.card_type == card_type and c.phase != Phase.NEW
               and c.due_at is not None and c.due_at <= now]
        due.sort(key=lambda c: (c.due_at, c.id))
        return [copy.deepcopy(c) for c in due]

    def fetch_new(self, card_type: str, limit: int) -> list[Card]:
        if limit <= 0:
            return []
        new = [c for c in self._cards.values()
               if c.card_type == card_type and c.phase == Phase.NEW]
        return [copy.deepcopy(c) for c in new[:limit]]

    def save(self, card: Card):
        self._cards[card.id] = copy.deepcopy(card)


class SqliteCardStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def add(self, card: Card):
        try:
            seq = self.conn.execute(
                "SELECT COALESCE(MAX(created_seq), 0) + 1 AS seq FROM cards").fetchone()["seq"]
            self.conn.execute("""
                INSERT INTO cards (id, card_type, attributes, repetitions, interval_days,
                                   ease_factor, due_at, lapses, learning_step_index,
                                   last_reviewed_at, created_seq)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (card.id, card.card_type, json.dumps(card.attributes, sort_keys=True),
                  card.repetitions, card.interval_days, card.ease_factor,
                  format_time(card.due_at), card.lapses, card.learning_step_index,
                  format_time(card.last_reviewed_at), seq))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot add card {card.id}: {e}") from e

    def get(self, card_id: str) -> Card | None:
        row = self._query_one("SELECT * FROM cards WHERE id = ?", (card_id,))
        return _row_to_card(row) if row else None

    def all_cards(self, card_type: str | None = None) -> list[Card]:
        if card_type is None:
            rows = self._query("SELECT * FROM cards ORDER BY created_seq, id", ())
        else:
            rows = self._query(
                "SELECT * FROM cards WHERE card_type = ? ORDER BY created_seq, id", (card_type,))
        return [_row_to_card(r) for r in rows]

    def fetch_due(self, card_type: str, now: datetime) -> list[Card]:
        rows = self._query("""
            SELECT * FROM cards
            WHERE card_type = ? AND due_at IS NOT NULL AND due_at <= ?
              AND NOT (repetitions = 0 AND learning_step_index = -1
                       AND last_reviewed_at IS NULL)
            ORDER BY due_at ASC, id ASC
        """, (card_type, format_time(now)))
        return [_row_to_card(r) for r in rows]

    def fetch_new(self, card_type: str, limit: int) -> list[Card]:
        if limit <= 0:
            return []
        rows = self._query("""
            SELECT * FROM cards
            WHERE card_type = ? AND repetitions = 0 AND learning_step_index = -1
              AND last_reviewed_at IS NULL
            ORDER BY created_seq ASC, id ASC
            LIMIT ?
        """, (card_type, limit))
        return [_row_to_card(r) for r in rows]

    def save(self, card: Card):
        try:
            cur = self.conn.execute("""
                UPDATE cards SET card_type=?, attributes=?, repetitions=?, interval_days=?,
                       ease_factor=?, due_at=?, lapses=?, learning_step_index=?,
                       last_reviewed_at=?
                WHERE id=?
            """, (card.card_type, json.dumps(card.attributes, sort_keys=True),
                  card.repetitions, card.interval_days, card.ease_factor,
                  format_time(card.due_at), card.lapses, card.learning_step_index,
                  format_time(card.last_reviewed_at), card.id))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot save card {card.id}: {e}") from e
        if cur.rowcount == 0:
            self.add(card)

    def _query(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Card query failed: {e}") from e

    def _query_one(self, sql: str, params: tuple) -> sqlite3.Row | None:
        rows = self._query(sql, params)
        return rows[0] if rows else None


def _row_to_card(row: sqlite3.Row) -> Card:
    return Card(
        id=row["id"],
        card_type=row["card_type"],
        repetitions=row["repetitions"],
        interval_days=row["interval_days"],
        ease_factor=row["ease_factor"],
        due_at=parse_time(row["due_at"]),
        lapses=row["lapses"],
        learning_step_index=row["learning_step_index"],
        last_reviewed_at=parse_time(row["last_reviewed_at"]),
        attributes=json.loads(row["attributes"]),
    )
