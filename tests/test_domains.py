import pickle

import numpy as np
import pytest
from scipy.sparse import csr_matrix

from hrd_evolved.corpus import CandidateHit, Entity
from hrd_evolved.domains import (
    DomainTable,
    build_basis,
    compute_domain_similarities,
    cosine_similarities,
    cosine_similarity,
    project,
)
from hrd_evolved.errors import MissingDataError


def _hit(accession, database="swissprot"):
    return CandidateHit(accession, database, "some protein", ("some", "protein"), 10.0)


@pytest.mark.parametrize(
    "a, b",
    [
        ([1.0, 2.0, 0.0], [1.0, 2.0, 0.0]),
        ([1.0, 0.0, 3.0], [0.0, 2.0, 1.0]),
        ([0.5, 0.5, 0.5], [3.0, 0.0, 0.0]),
    ],
)
def test_cosine_symmetric_and_bounded(a, b):
    ab = cosine_similarity(a, b)
    assert ab == pytest.approx(cosine_similarity(b, a))
    assert -1.0 <= ab <= 1.0


def test_cosine_identical_vectors():
    assert cosine_similarity([1.0, 2.0, 0.0], [1.0, 2.0, 0.0]) == pytest.approx(1.0)


@pytest.mark.parametrize("a, b", [([0.0, 0.0], [1.0, 2.0]), ([1.0, 2.0], [0.0, 0.0]), ([0.0, 0.0], [0.0, 0.0])])
def test_cosine_zero_vector_is_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_cosine_shape_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


def test_batched_cosine_matches_dense():
    rng = np.random.default_rng(3)
    dense = rng.random((5, 4))
    dense[2] = 0.0
    vector = rng.random(4)
    sims = cosine_similarities(vector, csr_matrix(dense))
    expected = [cosine_similarity(vector, row) for row in dense]
    assert sims == pytest.approx(expected)
    assert sims[2] == 0.0


def test_basis_is_sorted_union(corpus, table):
    assert build_basis(corpus[0], table) == ("D1", "D2", "D3")
    assert build_basis(corpus[0], table) == build_basis(corpus[0], table)


def test_project_aligns_to_basis(table):
    vector = project(["D3", "D1"], ("D1", "D2", "D3"), table)
    assert vector.tolist() == [1.0, 0.0, 0.5]


def test_domain_similarities(corpus, table):
    similarities = compute_domain_similarities(corpus[0], table)
    assert similarities.basis == ("D1", "D2", "D3")
    assert similarities.entity_vector.tolist() == [1.0, 2.0, 0.0]
    assert similarities.candidate_vectors.shape == (2, 3)
    assert similarities.scores == pytest.approx([1.0, 0.0])
    assert similarities.max_score == pytest.approx(1.0)


def test_entity_without_domains_scores_zero(corpus, table):
    similarities = compute_domain_similarities(corpus[1], table)
    assert similarities.basis == ()
    assert similarities.scores.tolist() == [0.0, 0.0]
    assert similarities.max_score == 0.0


def test_entity_without_hits():
    entity = Entity("Q9", 10, frozenset({"D1"}), {})
    similarities = compute_domain_similarities(entity, DomainTable({"D1": 1.0}))
    assert similarities.scores.size == 0
    assert similarities.max_score == 0.0


def test_candidate_missing_from_lookup_is_zero_vector():
    entity = Entity("Q9", 10, frozenset({"D1"}), {"swissprot": (_hit("A"), _hit("B"))})
    table = DomainTable({"D1": 1.0}, {"A": ["D1"]})
    assert compute_domain_similarities(entity, table).scores == pytest.approx([1.0, 0.0])


def test_missing_domain_weight_is_fatal():
    entity = Entity("Q9", 10, frozenset({"D1"}), {"swissprot": (_hit("A"),)})
    table = DomainTable({"D1": 1.0}, {"A": ["D7"]})
    with pytest.raises(MissingDataError) as excinfo:
        compute_domain_similarities(entity, table)
    assert excinfo.value.details == {"entity": "Q9", "domain": "D7"}


def test_table_is_read_only_and_picklable(table):
    with pytest.raises(TypeError):
        table.weights["D1"] = 5.0
    restored = pickle.loads(pickle.dumps(table))
    assert dict(restored.weights) == dict(table.weights)
    assert restored.domains_of("P1") == frozenset({"D1", "D2"})
    assert restored.domains_of("nope") is None
