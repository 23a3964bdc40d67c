"""
Population bookkeeping for the genetic trainer.

Individuals live in an id-keyed arena. Ids grow with insertion, so ranking by
(score descending, id ascending) is a total order in which older individuals
win ties. Individuals with identical weights are refused: a population never
holds the same parameter set twice.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Sequence

import numpy as np

from hrd_evolved.parameters import Parameters


class Population:
    def __init__(self) -> None:
        self._members: dict[int, Parameters] = {}
        self._by_weights: dict[tuple[float, ...], int] = {}
        self._next_id = itertools.count(1)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Parameters]:
        return iter(self._members.values())

    def __contains__(self, individual: Parameters) -> bool:
        return any(member is individual for member in self._members.values())

    def add(self, individual: Parameters) -> int | None:
        """Adds an individual and returns its id, or None if its weights are already present."""
        key = individual.weights_key()
        if key in self._by_weights:
            return None
        member_id = next(self._next_id)
        self._members[member_id] = individual
        self._by_weights[key] = member_id
        return member_id

    def unevaluated(self) -> list[Parameters]:
        """Members without memoized fitness, in insertion order."""
        return [member for member in self._members.values() if not member.is_evaluated]

    def ranked(self) -> list[Parameters]:
        """Members from fittest to least fit; equal scores keep insertion order."""
        pending = self.unevaluated()
        if pending:
            raise ValueError(f"{len(pending)} individuals have not been evaluated yet")
        order = sorted(
            self._members.items(), key=lambda item: (-item[1].avg_evaluation_score, item[0])
        )
        return [member for _, member in order]

    def truncate(self, size: int) -> list[Parameters]:
        """Keeps only the ``size`` fittest members and returns them, fittest first."""
        survivors = self.ranked()[:size]
        keep = {id(member) for member in survivors}
        for member_id in [i for i, m in self._members.items() if id(m) not in keep]:
            member = self._members.pop(member_id)
            del self._by_weights[member.weights_key()]
        return survivors

    def best(self) -> Parameters:
        return self.ranked()[0]


def rank_biased_choice(ranking: Sequence[Parameters], rng: np.random.Generator) -> Parameters:
    """
    Random individual from a ranking ordered fittest first, biased towards
    the fit end.

    The place in the ranking is ceil(|N(0, size / 3)|), redrawn until it lies
    within 1..size.
    """
    size = len(ranking)
    if size == 0:
        raise ValueError("Cannot choose from an empty ranking")
    while True:
        place = math.ceil(abs(rng.normal(0.0, size / 3.0)))
        if 1 <= place <= size:
            return ranking[place - 1]
