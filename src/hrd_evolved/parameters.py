"""
Parameter sets: the tunable weights of description scoring.

A ``Parameters`` instance is one individual of the genetic trainer. Its
weights are fixed once created; ``random``, ``recombine`` and ``neighbour``
always return new instances. Fitness metrics are memoized on the instance
after it has been evaluated and are not carried over by ``clone`` unless
asked for.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from hrd_evolved.errors import ParameterRangeError

DEFAULT_MUTATION_STEP = 0.1

TOKEN_SCORE_FIELDS = (
    "token_score_bit_score_weight",
    "token_score_database_score_weight",
    "token_score_overlap_score_weight",
    "token_score_domain_similarity_weight",
)
DESCRIPTION_SCORE_FIELDS = (
    "description_score_bit_score_weight",
    "description_score_domain_similarity_weight",
)
SCALAR_FIELDS = TOKEN_SCORE_FIELDS + DESCRIPTION_SCORE_FIELDS

ORIGINS = ("seed", "random", "offspring", "mutant")


@dataclass(frozen=True)
class ParameterSpace:
    """
    Valid range of every parameter field.

    Attributes:
        database_names: Sorted source database names that get a weight each.
        token_score_weight: Range of the four token score weights.
        description_score_bit_score_weight: Range of the relative bit score coefficient.
        description_score_domain_similarity_weight: Range of the domain similarity coefficient.
        blast_db_weight: Range of every per-database weight.
    """

    database_names: tuple[str, ...]
    token_score_weight: tuple[float, float] = (0.0, 1.0)
    description_score_bit_score_weight: tuple[float, float] = (0.0, 10.0)
    description_score_domain_similarity_weight: tuple[float, float] = (0.0, 10.0)
    blast_db_weight: tuple[float, float] = (0.0, 1000.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "database_names", tuple(sorted(set(self.database_names))))
        for name in ("token_score_weight", "description_score_bit_score_weight",
                     "description_score_domain_similarity_weight", "blast_db_weight"):
            low, high = getattr(self, name)
            if low > high:
                raise ParameterRangeError("Empty parameter range", {"field": name, "range": (low, high)})
            object.__setattr__(self, name, (float(low), float(high)))

    def bounds(self, name: str) -> tuple[float, float]:
        """Range of a scalar field, or of a database weight when ``name`` is a database."""
        if name in TOKEN_SCORE_FIELDS:
            return self.token_score_weight
        if name in DESCRIPTION_SCORE_FIELDS:
            return getattr(self, name)
        if name in self.database_names:
            return self.blast_db_weight
        raise KeyError(name)


@dataclass(eq=False)
class Parameters:
    """
    One set of scoring weights.

    Equality is identity: two individuals with equal scores, or even equal
    weights, are still different individuals. Use ``weights_key`` to compare
    weights.
    """

    space: ParameterSpace
    token_score_bit_score_weight: float = 0.468
    token_score_database_score_weight: float = 0.2098
    token_score_overlap_score_weight: float = 0.3221
    token_score_domain_similarity_weight: float = 0.0
    description_score_bit_score_weight: float = 2.717
    description_score_domain_similarity_weight: float = 0.0
    blast_db_weights: dict[str, float] = field(default_factory=dict)
    origin: str = "seed"

    # memoized fitness, set by evaluation
    avg_evaluation_score: float | None = None
    avg_true_positive_rate: float | None = None
    avg_false_positive_rate: float | None = None
    avg_go_f_score: float | None = None

    def __post_init__(self) -> None:
        if self.origin not in ORIGINS:
            raise ValueError(f"Unknown origin {self.origin!r}")
        self.blast_db_weights = {db: float(w) for db, w in self.blast_db_weights.items()}
        self.validate()

    def validate(self) -> None:
        """Rejects values outside the parameter space."""
        missing = set(self.space.database_names) - set(self.blast_db_weights)
        unknown = set(self.blast_db_weights) - set(self.space.database_names)
        if missing or unknown:
            raise ParameterRangeError(
                "Database weights do not match the configured databases",
                {"missing": sorted(missing), "unknown": sorted(unknown)},
            )
        for name, value in self.items():
            low, high = self.space.bounds(name)
            if not low <= value <= high:
                raise ParameterRangeError(
                    "Parameter out of range", {"field": name, "value": value, "range": (low, high)}
                )

    def items(self) -> list[tuple[str, float]]:
        """(field, value) for every scalar field followed by every database weight."""
        scalars = [(name, float(getattr(self, name))) for name in SCALAR_FIELDS]
        databases = [(db, self.blast_db_weights[db]) for db in self.space.database_names]
        return scalars + databases

    def weights_key(self) -> tuple[float, ...]:
        return tuple(value for _, value in self.items())

    def blast_db_weight(self, database: str) -> float:
        return self.blast_db_weights[database]

    @property
    def is_evaluated(self) -> bool:
        return self.avg_evaluation_score is not None

    def _with_values(self, values: Mapping[str, float], origin: str) -> Parameters:
        return Parameters(
            space=self.space,
            blast_db_weights={db: values[db] for db in self.space.database_names},
            origin=origin,
            **{name: values[name] for name in SCALAR_FIELDS},
        )

    # ------------------------------------------------------------------
    # Genetic operators
    # ------------------------------------------------------------------

    @classmethod
    def random(cls, space: ParameterSpace, rng: np.random.Generator) -> Parameters:
        """Every field drawn independently and uniformly from its range."""
        values = {}
        for name in SCALAR_FIELDS + space.database_names:
            low, high = space.bounds(name)
            values[name] = float(rng.uniform(low, high))
        return cls(
            space=space,
            blast_db_weights={db: values[db] for db in space.database_names},
            origin="random",
            **{name: values[name] for name in SCALAR_FIELDS},
        )

    def clone(self, keep_scores: bool = False) -> Parameters:
        """Deep copy of the weights; evaluation metrics only with ``keep_scores``."""
        copy = self._with_values(dict(self.items()), self.origin)
        if keep_scores:
            copy.avg_evaluation_score = self.avg_evaluation_score
            copy.avg_true_positive_rate = self.avg_true_positive_rate
            copy.avg_false_positive_rate = self.avg_false_positive_rate
            copy.avg_go_f_score = self.avg_go_f_score
        return copy

    def recombine(self, other: Parameters, rng: np.random.Generator) -> Parameters:
        """
        One child of ``self`` and ``other``.

        Every field, and every database weight separately, is inherited from
        either parent with probability 1/2.
        """
        if other.space != self.space:
            raise ValueError("Cannot recombine parameters from different parameter spaces")
        mine, theirs = dict(self.items()), dict(other.items())
        values = {name: mine[name] if rng.random() < 0.5 else theirs[name] for name in mine}
        return self._with_values(values, "offspring")

    def neighbour(self, rng: np.random.Generator, step: float | None = None) -> Parameters:
        """
        A mutant: each field moves by N(0, step * range width) and is clamped
        back into its range.
        """
        step = DEFAULT_MUTATION_STEP if step is None else step
        values = {}
        for name, value in self.items():
            low, high = self.space.bounds(name)
            delta = float(rng.normal(0.0, step * (high - low))) if high > low else 0.0
            values[name] = float(np.clip(value + delta, low, high))
        return self._with_values(values, "mutant")

    # ------------------------------------------------------------------
    # Configuration representation
    # ------------------------------------------------------------------

    def to_config_dict(self) -> dict[str, Any]:
        """The ``parameters`` section of a trainer configuration."""
        out: dict[str, Any] = {name: float(getattr(self, name)) for name in SCALAR_FIELDS}
        out["blast_db_weights"] = dict(sorted(self.blast_db_weights.items()))
        return out

    @classmethod
    def from_config_dict(
        cls, data: Mapping[str, Any], space: ParameterSpace, origin: str = "seed"
    ) -> Parameters:
        unknown = set(data) - set(SCALAR_FIELDS) - {"blast_db_weights"}
        if unknown:
            raise ParameterRangeError("Unknown parameter fields", {"fields": sorted(unknown)})
        scalars = {name: float(data[name]) for name in SCALAR_FIELDS if name in data}
        return cls(
            space=space,
            blast_db_weights=dict(data.get("blast_db_weights", {})),
            origin=origin,
            **scalars,
        )

    def __repr__(self) -> str:
        score = "unevaluated" if self.avg_evaluation_score is None else f"{self.avg_evaluation_score:.4f}"
        return f"Parameters(origin={self.origin!r}, score={score})"
