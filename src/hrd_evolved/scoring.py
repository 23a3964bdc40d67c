"""
Token and description scoring of candidate hits.

For one entity and one parameter set:

1. Every token of every candidate description accumulates the bit scores,
   database weights, alignment overlaps and (optionally) domain similarities
   of the hits it occurs in. Its token score is the weighted sum of those
   cumulative values relative to the entity-wide totals.
2. Tokens scoring at least half of the best token score are informative.
3. A description scores by its informative tokens (lexical score), its
   relative bit score and, optionally, its relative domain similarity.
4. The highest scoring description wins.

All intermediate values are kept in ``EntityScores`` objects owned by an
``EvaluationContext``; the corpus itself is never modified.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from hrd_evolved.corpus import CandidateHit, Entity
from hrd_evolved.domains import DomainSimilarities, DomainTable, compute_domain_similarities
from hrd_evolved.errors import MissingDataError
from hrd_evolved.parameters import Parameters

if TYPE_CHECKING:
    from numpy.typing import NDArray

# Columns of the per-hit signal matrix
BIT_SCORE, DATABASE_SCORE, OVERLAP_SCORE, DOMAIN_SIMILARITY = range(4)


def _relative(values: NDArray[np.float64], total: NDArray[np.float64]) -> NDArray[np.float64]:
    out = np.zeros_like(values)
    np.divide(values, total, out=out, where=total > 0)
    return out


@dataclass
class EntityScores:
    """Scratch state of one entity under one parameter set."""

    entity: Entity
    domain: DomainSimilarities | None
    signals: NDArray[np.float64]
    token_scores: dict[str, float] = field(default_factory=dict)
    cumulative_signals: dict[str, NDArray[np.float64]] = field(default_factory=dict)
    """Token -> summed signal rows of the hits it occurs in (columns as in ``signals``)."""
    informative_threshold: float = 0.0
    lexical_scores: NDArray[np.float64] | None = None
    description_scores: NDArray[np.float64] | None = None
    selected: int | None = None

    @property
    def max_domain_similarity(self) -> float:
        return self.domain.max_score if self.domain is not None else 0.0

    @property
    def selected_hit(self) -> CandidateHit | None:
        if self.selected is None:
            return None
        return self.entity.candidates[self.selected]

    def is_informative(self, token: str) -> bool:
        return self.token_scores.get(token, 0.0) >= self.informative_threshold


def hit_signals(
    entity: Entity,
    parameters: Parameters,
    domain: DomainSimilarities | None,
) -> NDArray[np.float64]:
    """(num_candidates, 4) matrix of bit score, database weight, overlap and domain similarity."""
    signals = np.zeros((len(entity.candidates), 4), dtype=np.float64)
    for index, hit in enumerate(entity.candidates):
        if hit.database not in parameters.blast_db_weights:
            raise MissingDataError(
                "No weight for source database of hit",
                {"entity": entity.accession, "hit": hit.accession, "database": hit.database},
            )
        signals[index, BIT_SCORE] = hit.bit_score
        signals[index, DATABASE_SCORE] = parameters.blast_db_weight(hit.database)
        signals[index, OVERLAP_SCORE] = hit.overlap(entity.length)
    if domain is not None:
        signals[:, DOMAIN_SIMILARITY] = domain.scores
    return signals


def token_weights(parameters: Parameters, domain_scoring: bool) -> NDArray[np.float64]:
    return np.array(
        [
            parameters.token_score_bit_score_weight,
            parameters.token_score_database_score_weight,
            parameters.token_score_overlap_score_weight,
            parameters.token_score_domain_similarity_weight if domain_scoring else 0.0,
        ],
        dtype=np.float64,
    )


def measure_token_scores(scores: EntityScores, parameters: Parameters, domain_scoring: bool) -> None:
    """Cumulative token scores relative to the entity-wide totals."""
    cumulative: dict[str, NDArray[np.float64]] = defaultdict(lambda: np.zeros(4, dtype=np.float64))
    for index, hit in enumerate(scores.entity.candidates):
        for token in hit.tokens:
            cumulative[token] += scores.signals[index]

    scores.cumulative_signals = dict(cumulative)

    totals = scores.signals.sum(axis=0) if len(scores.signals) else np.zeros(4)
    weights = token_weights(parameters, domain_scoring)
    scores.token_scores = {
        token: float(np.dot(weights, _relative(sums, totals)))
        for token, sums in scores.cumulative_signals.items()
    }
    high_score = max(scores.token_scores.values(), default=0.0)
    scores.informative_threshold = high_score / 2.0


def lexical_score(scores: EntityScores, hit: CandidateHit) -> float:
    """
    Sum of the informative token scores of a description, divided by the
    ratio of all its tokens to its informative tokens.
    """
    informative = [scores.token_scores[t] for t in hit.tokens if scores.is_informative(t)]
    if not informative:
        return 0.0
    correction_factor = len(hit.tokens) / len(informative)
    return sum(informative) / correction_factor


def measure_description_scores(scores: EntityScores, parameters: Parameters, domain_scoring: bool) -> None:
    """Scores every candidate description and selects the best one."""
    hits = scores.entity.candidates
    bit_scores = scores.signals[:, BIT_SCORE]
    max_bit_score = float(bit_scores.max()) if len(hits) else 0.0
    max_domain_similarity = scores.max_domain_similarity

    lexical = np.array([lexical_score(scores, hit) for hit in hits], dtype=np.float64)
    description = lexical.copy()
    if max_bit_score > 0:
        description += parameters.description_score_bit_score_weight * bit_scores / max_bit_score
    if domain_scoring and max_domain_similarity > 0:
        description += (
            parameters.description_score_domain_similarity_weight
            * scores.signals[:, DOMAIN_SIMILARITY]
            / max_domain_similarity
        )
    scores.lexical_scores = lexical
    scores.description_scores = description

    usable = np.array([bool(hit.tokens) for hit in hits], dtype=bool)
    if usable.any():
        # argmax keeps the first of equal maxima, i.e. database then hit order
        masked = np.where(usable, description, -np.inf)
        scores.selected = int(np.argmax(masked))
    else:
        scores.selected = None


def score_entity(
    entity: Entity,
    parameters: Parameters,
    table: DomainTable | None = None,
    domain_scoring: bool = False,
) -> EntityScores:
    """Runs the whole scoring pipeline for one entity."""
    domain = None
    if domain_scoring:
        if table is None:
            raise MissingDataError(
                "Domain architecture scoring needs a domain table", {"entity": entity.accession}
            )
        domain = compute_domain_similarities(entity, table)
    scores = EntityScores(entity=entity, domain=domain, signals=hit_signals(entity, parameters, domain))
    measure_token_scores(scores, parameters, domain_scoring)
    measure_description_scores(scores, parameters, domain_scoring)
    return scores


class EvaluationContext:
    """
    Per-evaluation scratch space.

    A context belongs to exactly one evaluation of one parameter set; the
    domain table it references is shared and read-only. Parallel workers each
    create their own contexts.
    """

    def __init__(self, parameters: Parameters, table: DomainTable | None = None, domain_scoring: bool = False):
        self.parameters = parameters
        self.table = table
        self.domain_scoring = domain_scoring
        self.entity_scores: dict[str, EntityScores] = {}

    def score(self, entity: Entity) -> EntityScores:
        scores = score_entity(entity, self.parameters, self.table, self.domain_scoring)
        self.entity_scores[entity.accession] = scores
        return scores

    def reset(self) -> None:
        self.entity_scores.clear()

    def __len__(self) -> int:
        return len(self.entity_scores)
