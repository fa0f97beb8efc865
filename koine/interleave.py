"""Interleaving strategies: merge per-type card groups into one queue.

Both strategies shuffle each group independently and then merge, so the
order within a type is random while the mix of types follows the target
ratios. Types listed earlier in CARD_TYPES win ties and take over when
others run out.
"""

import random

from koine.algorithm import round_half_up
from koine.models import CARD_TYPES


class Interleaver:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def interleave(self, groups: dict[str, list], ratios: dict[str, float]) -> list:
        shuffled = {}
        for card_type in self._order(groups):
            items = list(groups[card_type])
            self.rng.shuffle(items)
            shuffled[card_type] = items
        return self.merge(shuffled, ratios)

    def merge(self, groups: dict[str, list], ratios: dict[str, float]) -> list:
        raise NotImplementedError

    @staticmethod
    def _order(groups: dict[str, list]) -> list[str]:
        known = [t for t in CARD_TYPES if t in groups]
        return known + sorted(t for t in groups if t not in CARD_TYPES)


class TargetRatioInterleaver(Interleaver):
    """Greedy merge: take from the type furthest behind round(len * ratio).

    Keeps every prefix within about one item of the target mix as long as
    each type has candidates left.
    """

    def merge(self, groups: dict[str, list], ratios: dict[str, float]) -> list:
        order = self._order(groups)
        taken = {t: 0 for t in order}
        result = []
        total = sum(len(groups[t]) for t in order)
        while len(result) < total:
            best = None
            best_deficit = None
            for card_type in order:
                if taken[card_type] >= len(groups[card_type]):
                    continue
                target = round_half_up(len(result) * ratios.get(card_type, 0.0))
                deficit = target - taken[card_type]
                if best is None or deficit > best_deficit:
                    best, best_deficit = card_type, deficit
            result.append(groups[best][taken[best]])
            taken[best] += 1
        return result


class WeightedRoundRobinInterleaver(Interleaver):
    """Smooth weighted round-robin over the types that still have cards."""

    def merge(self, groups: dict[str, list], ratios: dict[str, float]) -> list:
        order = self._order(groups)
        taken = {t: 0 for t in order}
        credit = {t: 0.0 for t in order}
        result = []
        while True:
            live = [t for t in order if taken[t] < len(groups[t])]
            if not live:
                return result
            weight_sum = sum(ratios.get(t, 0.0) for t in live)
            if weight_sum <= 0:
                pick = live[0]
            else:
                for t in live:
                    credit[t] += ratios.get(t, 0.0)
                pick = max(live, key=lambda t: (credit[t], -order.index(t)))
                credit[pick] -= weight_sum
            result.append(groups[pick][taken[pick]])
            taken[pick] += 1
