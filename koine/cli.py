"""CLI: command-line interface for koine."""

import argparse
import json
import pathlib
import sys
import time

from koine.algorithm import preview_intervals
from koine.analytics import (STRUGGLING_THRESHOLD, leech_count, leech_status,
                             optimal_review_counts, phase_counts, retention_rate,
                             review_forecast, weak_points)
from koine.app import App
from koine.dataio import (export_document, export_vocab_csv, import_cards,
                          records_from_document)
from koine.errors import KoineError, StoreError, ValidationError
from koine.filters import BUILT_IN_PRESETS, get_preset, only_types
from koine.models import CARD_TYPES, Card, ReviewQuality
from koine.session import SessionState

FRONT_KEYS = {"vocab": ("greek", "lemma"), "grammar": ("question", "form"),
              "verse": ("reference",)}
BACK_KEYS = {"vocab": ("gloss", "definition"), "grammar": ("answer", "parsing"),
             "verse": ("text",)}


def cmd_import(args, app: App):
    path = pathlib.Path(args.file)
    try:
        records = records_from_document(json.loads(path.read_text()))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        sys.exit(1)

    app.init_db()
    stats = import_cards(app.store, records, app.clock.now(), app.scheduler_config())
    print(f"Imported: {stats['new']} new, {stats['updated']} updated, "
          f"{stats['unchanged']} unchanged, {stats['skipped']} skipped")
    app.close()


def cmd_export(args, app: App):
    app.init_db()
    if args.csv:
        text = export_vocab_csv(app.store).rstrip("\n")
    else:
        text = json.dumps(export_document(app.store, app.clock.now()), indent=2,
                          ensure_ascii=False)
    app.close()
    if args.file:
        pathlib.Path(args.file).write_text(text + "\n")
        print(f"Exported to {args.file}")
    else:
        print(text)


def cmd_status(args, app: App):
    db_path = app.data_dir / "koine.db"
    if not db_path.exists():
        print("No database found. Run 'koine import' first.")
        return

    app.init_db()
    now = app.clock.now()
    cards = app.store.all_cards()
    due = sum(len(app.store.fetch_due(t, now)) for t in CARD_TYPES)
    threshold = app.scheduler_config().leech_threshold

    print(f"Cards:          {len(cards)} total")
    for card_type in CARD_TYPES:
        print(f"  {card_type + ':':<13} {sum(1 for c in cards if c.card_type == card_type)}")
    print(f"Due now:        {due}")
    print(f"Leeches:        {leech_count(cards, threshold)}")
    struggling = sum(1 for c in cards if STRUGGLING_THRESHOLD <= c.lapses < threshold)
    print(f"Struggling:     {struggling}")
    print(f"Retention:      {retention_rate(cards):.1f}%")

    print("\nPhases:")
    for phase, count in phase_counts(cards).items():
        print(f"  {phase.value + ':':<13} {count}")

    print("\nNext 7 days:")
    for day, count in review_forecast(cards, 7, now.date()):
        print(f"  {day.isoformat()}: {count}")

    buckets = optimal_review_counts(cards, now)
    print(f"\nTo review: {buckets['urgent']} urgent, {buckets['recommended']} recommended, "
          f"{buckets['optional']} optional")

    weak = [p for p in weak_points(cards) if p.needs_work]
    if weak:
        print("\nNeeds work:")
        for point in weak:
            print(f"  {point.category}: {point.accuracy}% accuracy, "
                  f"{point.avg_lapses} lapses on average")

    app.close()


def cmd_study(args, app: App):
    try:
        filters = get_preset(args.preset)
        if args.type:
            filters.card_types = only_types(*args.type)
        settings = app.study_settings()
        config = app.scheduler_config()
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    app.init_db()
    session = app.new_session()
    queue = session.build(filters, settings)
    if not queue:
        print("Nothing to study.")
        app.close()
        return

    print(f"{len(queue)} card(s) in this session")
    tick_seconds = app.settings.get("tick_seconds", 1)
    while session.state == SessionState.ACTIVE:
        session.tick()
        entry = session.current_card()
        if entry is None:
            wait = session.wait_seconds() or 0
            print(f"Waiting for learning cards ({wait}s)...", end="\r", flush=True)
            time.sleep(min(wait, tick_seconds))
            continue

        card = entry.card
        try:
            labels = preview_intervals(card, app.clock.now(), config)
        except ValidationError as e:
            print(f"Warning: skipping card: {e}", file=sys.stderr)
            session.skip()
            continue

        stats = session.stats()
        print(f"\n[{card.card_type}] {stats.remaining} left, {stats.learning_count} learning")
        print(card_front(card))
        status = leech_status(card, config.leech_threshold)
        if status.message:
            print(f"({status.message})")
        if _ask("Show answer [Enter] ").strip().lower() == "q":
            break
        print(card_back(card))

        print("  ".join(f"{q.value}) {q.name.title()} {labels[q]}" for q in ReviewQuality))
        answer = _ask("Rating (1-4, q to quit): ").strip().lower()
        if answer == "q":
            break
        try:
            session.review(int(answer))
        except ValidationError as e:
            print(f"Warning: skipping card: {e}", file=sys.stderr)
            session.skip()
        except ValueError as e:
            print(f"Warning: {e}", file=sys.stderr)
        except StoreError as e:
            print(f"Warning: review not saved yet: {e}", file=sys.stderr)

    if session.pending_writes:
        try:
            session.flush_pending()
        except StoreError as e:
            print(f"Warning: {len(session.pending_writes)} review(s) not saved: {e}",
                  file=sys.stderr)
    print(f"\nReviewed {session.reviewed} card(s).")
    app.close()


def card_front(card: Card) -> str:
    return _pick(card, FRONT_KEYS.get(card.card_type, ())) or card.id


def card_back(card: Card) -> str:
    return _pick(card, BACK_KEYS.get(card.card_type, ())) or json.dumps(
        card.attributes, ensure_ascii=False)


def _pick(card: Card, keys) -> str | None:
    for key in keys:
        value = card.attributes.get(key)
        if value:
            return str(value)
    return None


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except EOFError:
        return "q"


def main():
    parser = argparse.ArgumentParser(prog="koine", description="Koine Greek spaced repetition")
    subparsers = parser.add_subparsers(dest="command")

    p_import = subparsers.add_parser("import", help="Import cards from a JSON file")
    p_import.add_argument("file", help="JSON file with a list of cards or an export document")

    p_export = subparsers.add_parser("export", help="Export cards and SRS state as JSON")
    p_export.add_argument("file", nargs="?", help="Output file (default: stdout)")
    p_export.add_argument("--csv", action="store_true",
                          help="Export vocabulary as CSV instead of JSON")

    subparsers.add_parser("status", help="Show card counts and stats")

    p_study = subparsers.add_parser("study", help="Start a study session in the terminal")
    p_study.add_argument("--preset", default="all", choices=sorted(BUILT_IN_PRESETS),
                         help="Filter preset (default: all)")
    p_study.add_argument("--type", action="append", choices=CARD_TYPES,
                         help="Only study this card type (repeatable)")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    app = App()
    if not app.data_dir.exists():
        app.data_dir.mkdir(parents=True, exist_ok=True)
        print(f"Created data directory: {app.data_dir}")

    try:
        if args.command == "import":
            cmd_import(args, app)
        elif args.command == "export":
            cmd_export(args, app)
        elif args.command == "status":
            cmd_status(args, app)
        elif args.command == "study":
            cmd_study(args, app)
    except KoineError as e:
        print(f"Error: {e}", file=sys.stderr)
        app.close()
        sys.exit(1)
