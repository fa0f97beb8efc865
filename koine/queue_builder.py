"""QueueBuilder: assemble a study session's card sequence from a card store."""

import random
from typing import Callable

from koine.algorithm import round_half_up
from koine.clock import SystemClock
from koine.config import Settings
from koine.filters import TYPE_PREDICATES, StudyFilters, matches_srs_filters
from koine.interleave import Interleaver, TargetRatioInterleaver
from koine.models import Card, StudyQueueEntry


class QueueBuilder:
    def __init__(self, store, clock=None, interleaver: Interleaver | None = None,
                 rng: random.Random | None = None,
                 type_predicates: dict[str, Callable[[Card, StudyFilters], bool]] | None = None,
                 srs_predicate: Callable[[Card, StudyFilters], bool] | None = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.interleaver = interleaver or TargetRatioInterleaver(rng)
        self.type_predicates = dict(TYPE_PREDICATES)
        if type_predicates:
            self.type_predicates.update(type_predicates)
        self.srs_predicate = srs_predicate or matches_srs_filters

    def new_card_limit(self, card_type: str, settings: Settings) -> int:
        return round_half_up(settings.new_cards_per_day * settings.ratio(card_type))

    def candidates(self, card_type: str, filters: StudyFilters, settings: Settings) -> list[Card]:
        """Due cards first, then new cards up to the per-type limit, filtered."""
        now = self.clock.now()
        due = self.store.fetch_due(card_type, now)
        new = self.store.fetch_new(card_type, self.new_card_limit(card_type, settings))
        type_ok = self.type_predicates.get(card_type)
        seen: set[str] = set()
        result = []
        for card in due + new:
            if card.id in seen:
                continue
            seen.add(card.id)
            if type_ok is not None and not type_ok(card, filters):
                continue
            if not self.srs_predicate(card, filters):
                continue
            result.append(card)
        return result

    def build(self, filters: StudyFilters, settings: Settings) -> list[StudyQueueEntry]:
        settings.validate()
        filters.validate()
        groups = {}
        for card_type in filters.enabled_types():
            groups[card_type] = [StudyQueueEntry(card_type, card)
                                 for card in self.candidates(card_type, filters, settings)]
        if not any(groups.values()):
            return []
        return self.interleaver.interleave(groups, settings.interleave_ratio)
