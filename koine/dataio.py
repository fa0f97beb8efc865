"""Card import and export as plain JSON-compatible records.

A record looks like {"id": ..., "type": "vocab", "attributes": {...},
"srs": {...}}. The "srs" block is optional on import; cards without one
start out new.
"""

import csv
import io
import sys
from datetime import datetime, timezone

from koine.algorithm import check_card
from koine.config import DEFAULT_CONFIG, SchedulerConfig
from koine.errors import ValidationError
from koine.models import CARD_TYPES, DEFAULT_EASE_FACTOR, VOCAB, Card, Phase

EXPORT_VERSION = 1

VOCAB_CSV_COLUMNS = ("greek", "lemma", "gloss", "gloss_fr", "part_of_speech", "frequency",
                     "mounce_chapter", "repetitions", "interval_days", "ease_factor",
                     "lapses", "due_at")


def card_to_dict(card: Card) -> dict:
    return {
        "id": card.id,
        "type": card.card_type,
        "attributes": dict(card.attributes),
        "srs": {
            "repetitions": card.repetitions,
            "interval_days": card.interval_days,
            "ease_factor": card.ease_factor,
            "due_at": _iso(card.due_at),
            "lapses": card.lapses,
            "learning_step_index": card.learning_step_index,
            "last_reviewed_at": _iso(card.last_reviewed_at),
        },
    }


def card_from_dict(record: dict) -> Card:
    if not isinstance(record, dict):
        raise ValidationError(f"Card record must be an object, got {type(record).__name__}")
    card_id = record.get("id")
    if not isinstance(card_id, str) or not card_id:
        raise ValidationError(f"Card record has no id: {record!r}")
    card_type = record.get("type")
    if card_type not in CARD_TYPES:
        raise ValidationError(f"Card {card_id}: unknown type {card_type!r}")
    attributes = record.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise ValidationError(f"Card {card_id}: attributes must be an object")
    srs = record.get("srs") or {}
    try:
        return Card(
            id=card_id,
            card_type=card_type,
            repetitions=int(srs.get("repetitions", 0)),
            interval_days=int(srs.get("interval_days", 0)),
            ease_factor=float(srs.get("ease_factor", DEFAULT_EASE_FACTOR)),
            due_at=_parse_iso(srs.get("due_at")),
            lapses=int(srs.get("lapses", 0)),
            learning_step_index=int(srs.get("learning_step_index", -1)),
            last_reviewed_at=_parse_iso(srs.get("last_reviewed_at")),
            attributes=dict(attributes),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Card {card_id}: bad SRS field: {e}") from e


def import_cards(store, records: list[dict], now: datetime | None = None,
                 config: SchedulerConfig = DEFAULT_CONFIG) -> dict:
    """Add or update cards from records. Returns stats dict.

    Existing cards only take new attributes; their scheduling state is
    never overwritten by an import. Records whose scheduling state breaks
    the card invariants under `config` are skipped.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    stats = {"new": 0, "updated": 0, "unchanged": 0, "skipped": 0}

    for record in records:
        try:
            card = card_from_dict(record)
            check_card(card, config)
        except ValidationError as e:
            print(f"Warning: skipping card record: {e}", file=sys.stderr)
            stats["skipped"] += 1
            continue

        existing = store.get(card.id)
        if existing is None:
            if card.phase != Phase.NEW and card.due_at is None:
                card.due_at = now
            store.add(card)
            stats["new"] += 1
        elif existing.card_type != card.card_type:
            print(f"Warning: skipping card {card.id}: type changed from "
                  f"{existing.card_type} to {card.card_type}", file=sys.stderr)
            stats["skipped"] += 1
        elif existing.attributes == card.attributes:
            stats["unchanged"] += 1
        else:
            existing.attributes = card.attributes
            store.save(existing)
            stats["updated"] += 1
    return stats


def export_cards(store, card_type: str | None = None) -> list[dict]:
    return [card_to_dict(c) for c in store.all_cards(card_type)]


def records_from_document(data) -> list:
    """Accept either a bare list of records or an export document."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("cards"), list):
        version = data.get("version", EXPORT_VERSION)
        if version != EXPORT_VERSION:
            raise ValidationError(f"Unsupported export version: {version!r}")
        return data["cards"]
    raise ValidationError("Expected a list of cards or an object with a 'cards' list")


def export_document(store, now: datetime | None = None) -> dict:
    if now is None:
        now = datetime.now(timezone.utc)
    return {"version": EXPORT_VERSION, "exported_at": _iso(now), "cards": export_cards(store)}


def export_vocab_csv(store) -> str:
    """Vocabulary cards as CSV, one row per card with its SRS state."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(VOCAB_CSV_COLUMNS)
    for card in store.all_cards(VOCAB):
        attrs = card.attributes
        writer.writerow([
            attrs.get("greek", ""),
            attrs.get("lemma", ""),
            attrs.get("gloss", ""),
            attrs.get("gloss_fr", ""),
            attrs.get("part_of_speech", ""),
            attrs.get("frequency", ""),
            attrs.get("mounce_chapter", ""),
            card.repetitions,
            card.interval_days,
            f"{card.ease_factor:.2f}",
            card.lapses,
            _iso(card.due_at) or "",
        ])
    return out.getvalue()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
