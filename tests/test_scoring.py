import numpy as np
import pytest

from hrd_evolved.corpus import CandidateHit, Entity
from hrd_evolved.errors import MissingDataError
from hrd_evolved.parameters import Parameters
from hrd_evolved.scoring import (
    BIT_SCORE,
    DATABASE_SCORE,
    DOMAIN_SIMILARITY,
    OVERLAP_SCORE,
    EvaluationContext,
    lexical_score,
    score_entity,
)


@pytest.fixture
def parameters(space):
    return Parameters(space=space, blast_db_weights={"swissprot": 653.0, "trembl": 904.0})


def test_hit_signals(corpus, parameters):
    scores = score_entity(corpus[0], parameters)
    assert scores.signals[:, BIT_SCORE].tolist() == [200.0, 50.0]
    assert scores.signals[:, DATABASE_SCORE].tolist() == [653.0, 904.0]
    assert scores.signals[:, OVERLAP_SCORE].tolist() == [1.0, 0.5]


def test_shared_token_gets_full_weight(corpus, parameters):
    scores = score_entity(corpus[0], parameters)
    expected = (
        parameters.token_score_bit_score_weight
        + parameters.token_score_database_score_weight
        + parameters.token_score_overlap_score_weight
    )
    assert scores.token_scores["protein"] == pytest.approx(expected)
    assert scores.informative_threshold == pytest.approx(expected / 2)


def test_token_scores_relative_to_totals(corpus, parameters):
    scores = score_entity(corpus[0], parameters)
    expected = (
        parameters.token_score_bit_score_weight * 200 / 250
        + parameters.token_score_database_score_weight * 653 / (653 + 904)
        + parameters.token_score_overlap_score_weight * 1.0 / 1.5
    )
    assert scores.token_scores["kinase"] == pytest.approx(expected)
    assert scores.is_informative("kinase")
    assert not scores.is_informative("hypothetical")


def test_cumulative_signals_per_token(corpus, table, parameters):
    scores = score_entity(corpus[0], parameters, table, domain_scoring=True)
    # "protein" occurs in every candidate
    assert scores.cumulative_signals["protein"].tolist() == scores.signals.sum(axis=0).tolist()
    assert scores.cumulative_signals["kinase"].tolist() == scores.signals[0].tolist()
    assert scores.cumulative_signals["kinase"][DOMAIN_SIMILARITY] == pytest.approx(1.0)
    assert scores.cumulative_signals["hypothetical"][DOMAIN_SIMILARITY] == 0.0


def test_lexical_score_corrects_for_uninformative_tokens(corpus, parameters):
    scores = score_entity(corpus[0], parameters)
    hypothetical = corpus[0].candidates[1]
    # one of two tokens informative
    assert lexical_score(scores, hypothetical) == pytest.approx(scores.token_scores["protein"] / 2)


def test_best_description_selected(corpus, parameters):
    scores = score_entity(corpus[0], parameters)
    assert scores.selected == 0
    assert scores.selected_hit.accession == "P1"
    assert scores.description_scores[0] == pytest.approx(
        scores.lexical_scores[0] + parameters.description_score_bit_score_weight
    )


def test_domain_similarity_changes_description_score(corpus, table, space):
    parameters = Parameters(
        space=space,
        description_score_domain_similarity_weight=5.0,
        blast_db_weights={"swissprot": 653.0, "trembl": 904.0},
    )
    plain = score_entity(corpus[0], parameters)
    with_domains = score_entity(corpus[0], parameters, table, domain_scoring=True)
    assert with_domains.max_domain_similarity == pytest.approx(1.0)
    assert with_domains.description_scores[0] == pytest.approx(plain.description_scores[0] + 5.0)
    assert with_domains.description_scores[1] == pytest.approx(plain.description_scores[1])


def test_domain_scoring_requires_table(corpus, parameters):
    with pytest.raises(MissingDataError):
        score_entity(corpus[0], parameters, None, domain_scoring=True)


def test_entity_without_hits(parameters):
    scores = score_entity(Entity("Q9", 100), parameters)
    assert scores.selected is None
    assert scores.selected_hit is None
    assert scores.token_scores == {}


def test_description_without_tokens_never_selected(parameters):
    empty = CandidateHit("A", "swissprot", "", (), 1000.0)
    entity = Entity("Q9", 100, hits={"swissprot": (empty,)})
    assert score_entity(entity, parameters).selected is None

    weak = CandidateHit("B", "trembl", "putative kinase", ("putative", "kinase"), 1.0)
    entity = Entity("Q9", 100, hits={"swissprot": (empty,), "trembl": (weak,)})
    assert score_entity(entity, parameters).selected_hit is weak


def test_equal_scores_keep_first_candidate(parameters):
    first = CandidateHit("A", "swissprot", "kinase", ("kinase",), 10.0)
    second = CandidateHit("B", "swissprot", "kinase", ("kinase",), 10.0)
    entity = Entity("Q9", 100, hits={"swissprot": (first, second)})
    assert score_entity(entity, parameters).selected == 0


def test_unknown_database_is_fatal(parameters):
    hit = CandidateHit("A", "pdb", "kinase", ("kinase",), 10.0)
    with pytest.raises(MissingDataError) as excinfo:
        score_entity(Entity("Q9", 100, hits={"pdb": (hit,)}), parameters)
    assert excinfo.value.details["hit"] == "A"


def test_context_keeps_scratch_state(corpus, parameters):
    context = EvaluationContext(parameters)
    for entity in corpus:
        context.score(entity)
    assert len(context) == 2
    assert isinstance(context.entity_scores["Q1"].description_scores, np.ndarray)
    context.reset()
    assert len(context) == 0
