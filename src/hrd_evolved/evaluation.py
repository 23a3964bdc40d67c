"""
Fitness of a parameter set: how well the descriptions it selects match the
reference descriptions (and, optionally, reference GO annotations).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from hrd_evolved.corpus import Entity, EntityCorpus, Reference
from hrd_evolved.domains import DomainTable
from hrd_evolved.errors import ReferenceDataError
from hrd_evolved.metrics import f_measure, false_positive_rate, mean, true_positive_rate
from hrd_evolved.parameters import Parameters
from hrd_evolved.scoring import EntityScores, EvaluationContext

logger = logging.getLogger(__name__)


@dataclass
class EvaluationSettings:
    """Switches of the scoring and evaluation pipeline that are not trained."""

    f_measure_beta: float = 1.0
    domain_architecture_scoring: bool = False
    evaluate_ontology_annotations: bool = False


@dataclass
class EntityEvaluation:
    """Evaluation of the description assigned to one entity."""

    accession: str
    evaluation_score: float
    selected_accession: str | None = None
    true_positive_rate: float | None = None
    false_positive_rate: float | None = None
    go_f_score: float | None = None


@dataclass
class FitnessResult:
    """Corpus-wide averages for one parameter set."""

    avg_evaluation_score: float
    avg_true_positive_rate: float | None = None
    avg_false_positive_rate: float | None = None
    avg_go_f_score: float | None = None
    num_entities: int = 0

    def apply(self, parameters: Parameters) -> Parameters:
        """Memoizes the metrics on the individual."""
        parameters.avg_evaluation_score = self.avg_evaluation_score
        parameters.avg_true_positive_rate = self.avg_true_positive_rate
        parameters.avg_false_positive_rate = self.avg_false_positive_rate
        parameters.avg_go_f_score = self.avg_go_f_score
        return parameters

    def to_dict(self) -> dict:
        return asdict(self)


def require_reference(corpus: EntityCorpus, entity: Entity, ontology: bool = False) -> Reference:
    reference = corpus.reference(entity.accession)
    if reference is None:
        raise ReferenceDataError("No reference for entity", {"entity": entity.accession})
    if not reference.tokens:
        raise ReferenceDataError(
            "Reference description has no tokens",
            {"entity": entity.accession, "description": reference.description},
        )
    if ontology and reference.go_terms is None:
        raise ReferenceDataError("No reference GO annotations for entity", {"entity": entity.accession})
    return reference


def candidate_go_terms(corpus: EntityCorpus, entity: Entity) -> set[str]:
    return {term for hit in entity.candidates for term in corpus.go_terms(hit.accession)}


def evaluate_entity(
    scores: EntityScores,
    reference: Reference,
    corpus: EntityCorpus,
    settings: EvaluationSettings,
) -> EntityEvaluation:
    hit = scores.selected_hit
    assigned_tokens = hit.tokens if hit is not None else ()
    result = EntityEvaluation(
        accession=scores.entity.accession,
        evaluation_score=f_measure(reference.tokens, assigned_tokens, settings.f_measure_beta),
        selected_accession=hit.accession if hit is not None else None,
    )
    if settings.evaluate_ontology_annotations:
        predicted = corpus.go_terms(hit.accession) if hit is not None else frozenset()
        reference_terms = reference.go_terms or frozenset()
        result.true_positive_rate = true_positive_rate(reference_terms, predicted)
        result.false_positive_rate = false_positive_rate(
            reference_terms, predicted, candidate_go_terms(corpus, scores.entity)
        )
        result.go_f_score = f_measure(reference_terms, predicted, settings.f_measure_beta)
    return result


def evaluate_corpus(
    parameters: Parameters,
    corpus: EntityCorpus,
    table: DomainTable | None = None,
    settings: EvaluationSettings | None = None,
) -> list[EntityEvaluation]:
    """Re-scores every entity with ``parameters`` in a fresh context and evaluates it."""
    settings = settings or EvaluationSettings()
    context = EvaluationContext(parameters, table, settings.domain_architecture_scoring)
    evaluations = []
    for entity in corpus:
        reference = require_reference(corpus, entity, settings.evaluate_ontology_annotations)
        scores = context.score(entity)
        evaluations.append(evaluate_entity(scores, reference, corpus, settings))
    return evaluations


def evaluate_parameters(
    parameters: Parameters,
    corpus: EntityCorpus,
    table: DomainTable | None = None,
    settings: EvaluationSettings | None = None,
) -> FitnessResult:
    """
    Fitness of one parameter set over the whole corpus.

    Does not touch ``parameters``; use ``FitnessResult.apply`` to memoize.
    """
    settings = settings or EvaluationSettings()
    evaluations = evaluate_corpus(parameters, corpus, table, settings)
    result = FitnessResult(
        avg_evaluation_score=mean([e.evaluation_score for e in evaluations]),
        num_entities=len(evaluations),
    )
    if settings.evaluate_ontology_annotations:
        result.avg_true_positive_rate = mean([e.true_positive_rate for e in evaluations])
        result.avg_false_positive_rate = mean([e.false_positive_rate for e in evaluations])
        result.avg_go_f_score = mean([e.go_f_score for e in evaluations])
    logger.debug("Evaluated %r on %d entities", parameters, len(evaluations))
    return result


def avg_max_evaluation_score(corpus: EntityCorpus, beta: float = 1.0) -> float:
    """
    Mean over entities of the best evaluation score any of their candidate
    descriptions could have achieved. An upper bound for every parameter set.
    """
    best_scores = []
    for entity in corpus:
        reference = require_reference(corpus, entity)
        best_scores.append(
            max((f_measure(reference.tokens, hit.tokens, beta) for hit in entity.candidates), default=0.0)
        )
    return mean(best_scores)


def avg_max_go_f_score(corpus: EntityCorpus, beta: float = 1.0) -> float:
    """Like ``avg_max_evaluation_score`` for the GO terms of the candidates."""
    best_scores = []
    for entity in corpus:
        reference = require_reference(corpus, entity, ontology=True)
        best_scores.append(
            max(
                (f_measure(reference.go_terms, corpus.go_terms(hit.accession), beta) for hit in entity.candidates),
                default=0.0,
            )
        )
    return mean(best_scores)
