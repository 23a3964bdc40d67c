"""
Domain architecture similarity between a query entity and its candidate hits.

Similarity follows the vector space model of "Protein comparison at the
domain architecture level" (Lee and Lee, BMC Bioinformatics 2009): every
distinct domain identifier annotated on the query or any of its hits is one
axis, each protein is weighted by the information content of its domains, and
the similarity of two proteins is the cosine of their weight vectors.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import csr_matrix

from hrd_evolved.corpus import Entity
from hrd_evolved.errors import MissingDataError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


class DomainTable:
    """
    Read-only lookup tables shared by every evaluation of a training run.

    Args:
        domain_weights: Domain identifier -> weight (information content).
        accession_domains: Hit accession -> domain identifiers annotated on it.
    """

    def __init__(
        self,
        domain_weights: Mapping[str, float],
        accession_domains: Mapping[str, Iterable[str]] | None = None,
    ):
        self._weights = MappingProxyType({k: float(v) for k, v in domain_weights.items()})
        self._accession_domains = MappingProxyType(
            {acc: frozenset(ids) for acc, ids in (accession_domains or {}).items()}
        )

    def __reduce__(self):
        return (DomainTable, (dict(self._weights), dict(self._accession_domains)))

    def __len__(self) -> int:
        return len(self._weights)

    @property
    def weights(self) -> Mapping[str, float]:
        return self._weights

    @property
    def accession_domains(self) -> Mapping[str, frozenset[str]]:
        return self._accession_domains

    def weight(self, domain_id: str) -> float | None:
        return self._weights.get(domain_id)

    def domains_of(self, accession: str) -> frozenset[str] | None:
        return self._accession_domains.get(accession)


def build_basis(entity: Entity, table: DomainTable) -> tuple[str, ...]:
    """
    Sorted union of the domain identifiers of an entity and all its hits.

    Hits without an entry in the accession lookup contribute nothing.
    """
    identifiers = set(entity.domains)
    for hit in entity.candidates:
        identifiers.update(table.domains_of(hit.accession) or ())
    return tuple(sorted(identifiers))


def basis_weights(basis: tuple[str, ...], table: DomainTable, accession: str = "") -> NDArray[np.float64]:
    """Weight of every basis axis. Raises MissingDataError for unknown identifiers."""
    weights = np.empty(len(basis), dtype=np.float64)
    for index, domain_id in enumerate(basis):
        weight = table.weight(domain_id)
        if weight is None:
            raise MissingDataError(
                "No domain weight for vector space axis",
                {"entity": accession, "domain": domain_id},
            )
        weights[index] = weight
    return weights


def project(domains: Iterable[str], basis: tuple[str, ...], table: DomainTable) -> NDArray[np.float64]:
    """
    Domain weight vector of one protein aligned to ``basis``.

    Index i holds the weight of ``basis[i]`` if the protein is annotated with
    it, else 0.
    """
    annotated = set(domains)
    vector = np.zeros(len(basis), dtype=np.float64)
    for index, domain_id in enumerate(basis):
        if domain_id in annotated:
            weight = table.weight(domain_id)
            if weight is None:
                raise MissingDataError(
                    "No domain weight for vector space axis", {"domain": domain_id}
                )
            vector[index] = weight
    return vector


def project_candidates(
    entity: Entity,
    basis: tuple[str, ...],
    weights: NDArray[np.float64],
    table: DomainTable,
) -> csr_matrix:
    """Sparse (num_candidates, len(basis)) matrix of candidate weight vectors."""
    axis = {domain_id: index for index, domain_id in enumerate(basis)}
    indptr = [0]
    indices: list[int] = []
    for hit in entity.candidates:
        columns = sorted(axis[d] for d in table.domains_of(hit.accession) or () if d in axis)
        indices.extend(columns)
        indptr.append(len(indices))
    data = weights[indices] if indices else np.empty(0, dtype=np.float64)
    return csr_matrix(
        (data, np.asarray(indices, dtype=np.int64), np.asarray(indptr, dtype=np.int64)),
        shape=(len(entity.candidates), len(basis)),
    )


def cosine_similarity(a: ArrayLike, b: ArrayLike) -> float:
    """
    sim(a, b) = dot(a, b) / (||a|| * ||b||)

    For any or both vectors equaling the origin this returns 0, never NaN.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Vector shapes differ: {a.shape} vs {b.shape}")
    magnitude = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if magnitude == 0.0:
        return 0.0
    return min(1.0, max(-1.0, float(np.dot(a, b)) / magnitude))


def cosine_similarities(vector: NDArray[np.float64], matrix: csr_matrix) -> NDArray[np.float64]:
    """Cosine similarity of ``vector`` against every row of ``matrix`` (0 for zero rows)."""
    dots = np.asarray(matrix @ vector, dtype=np.float64).ravel()
    row_norms = np.sqrt(np.asarray(matrix.multiply(matrix).sum(axis=1), dtype=np.float64).ravel())
    magnitudes = row_norms * float(np.linalg.norm(vector))
    sims = np.zeros_like(dots)
    np.divide(dots, magnitudes, out=sims, where=magnitudes > 0)
    return np.clip(sims, -1.0, 1.0)


@dataclass
class DomainSimilarities:
    """Vector space and per-candidate similarities for one entity."""

    basis: tuple[str, ...]
    entity_vector: NDArray[np.float64]
    candidate_vectors: csr_matrix
    scores: NDArray[np.float64]

    @property
    def max_score(self) -> float:
        return float(self.scores.max()) if self.scores.size else 0.0


def compute_domain_similarities(entity: Entity, table: DomainTable) -> DomainSimilarities:
    """
    Builds the entity's vector space, projects the entity and all of its hits
    into it and scores every hit by its cosine similarity to the entity.
    """
    basis = build_basis(entity, table)
    weights = basis_weights(basis, table, entity.accession)
    entity_vector = np.where(
        np.fromiter((d in entity.domains for d in basis), dtype=bool, count=len(basis)),
        weights,
        0.0,
    )
    candidate_vectors = project_candidates(entity, basis, weights, table)
    if not basis or not entity.candidates:
        scores = np.zeros(len(entity.candidates), dtype=np.float64)
    else:
        scores = cosine_similarities(entity_vector, candidate_vectors)
    return DomainSimilarities(basis, entity_vector, candidate_vectors, scores)
