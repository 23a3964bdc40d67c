"""
Read-only data model for training: query entities, their candidate hits and
the reference annotations they are evaluated against.

Nothing in here changes while parameters are being trained. Everything that
depends on a parameter set lives in the scratch state of ``scoring``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import cached_property


@dataclass(frozen=True)
class CandidateHit:
    """A homology search hit proposing its description for the query entity."""

    accession: str
    database: str
    description: str
    tokens: tuple[str, ...]
    bit_score: float
    query_start: int = 1
    query_end: int = 1
    subject_start: int = 1
    subject_end: int = 1
    subject_length: int = 1

    def overlap(self, query_length: int) -> float:
        """Mean coverage of query and subject by the alignment, clipped to [0, 1]."""
        query_cov = (self.query_end - self.query_start + 1) / max(query_length, 1)
        subject_cov = (self.subject_end - self.subject_start + 1) / max(self.subject_length, 1)
        return min(max((query_cov + subject_cov) / 2.0, 0.0), 1.0)


@dataclass(frozen=True)
class Entity:
    """
    A query protein with its candidate hits grouped by source database.

    Attributes:
        accession: Query identifier.
        length: Query sequence length (for overlap scores).
        domains: Domain annotation identifiers of the query itself.
        hits: Source database name -> hits in search result order.
    """

    accession: str
    length: int
    domains: frozenset[str] = frozenset()
    hits: Mapping[str, tuple[CandidateHit, ...]] = field(default_factory=dict)

    @cached_property
    def candidates(self) -> tuple[CandidateHit, ...]:
        """All hits, ordered by database name and then by search result order."""
        return tuple(hit for database in sorted(self.hits) for hit in self.hits[database])

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass(frozen=True)
class Reference:
    """Ground truth for one entity."""

    accession: str
    description: str
    tokens: tuple[str, ...]
    go_terms: frozenset[str] | None = None


class EntityCorpus:
    """
    The collection of entities a parameter set is evaluated on.

    Args:
        entities: Query entities in evaluation order.
        references: Entity accession -> reference annotation.
        hit_go_terms: Hit accession -> GO terms, for ontology evaluation.
    """

    def __init__(
        self,
        entities: list[Entity],
        references: Mapping[str, Reference] | None = None,
        hit_go_terms: Mapping[str, frozenset[str]] | None = None,
    ):
        self.entities = list(entities)
        self.references = dict(references or {})
        self.hit_go_terms = dict(hit_go_terms or {})

    def __len__(self) -> int:
        return len(self.entities)

    def __getitem__(self, index: int) -> Entity:
        return self.entities[index]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    @cached_property
    def database_names(self) -> list[str]:
        """Sorted distinct source database names seen in any entity."""
        return sorted({database for entity in self.entities for database in entity.hits})

    def reference(self, accession: str) -> Reference | None:
        return self.references.get(accession)

    def go_terms(self, hit_accession: str) -> frozenset[str]:
        return self.hit_go_terms.get(hit_accession, frozenset())
