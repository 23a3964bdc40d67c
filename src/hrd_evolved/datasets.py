"""
Loading a training corpus from a JSON document:

    {
      "domain_weights": {"IPR000001": 2.31, ...},
      "hit_domains": {"P12345": ["IPR000001"], ...},
      "hit_go_terms": {"P12345": ["GO:0005524"], ...},
      "entities": [
        {"accession": "Q1", "length": 312, "domains": ["IPR000001"],
         "hits": {"swissprot": [{"accession": "P12345", "description": "...",
                                 "bit_score": 210.0, "query_start": 1, "query_end": 300,
                                 "subject_start": 5, "subject_end": 305, "subject_length": 320}]}}
      ],
      "references": {"Q1": {"description": "...", "go_terms": ["GO:0005524"]}}
    }
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from hrd_evolved.corpus import CandidateHit, Entity, EntityCorpus, Reference
from hrd_evolved.domains import DomainTable
from hrd_evolved.errors import ConfigurationError, MissingDataError
from hrd_evolved.tokens import DescriptionFilter, TokenFilter


def _require(record: Mapping[str, Any], key: str, context: dict[str, Any]) -> Any:
    if key not in record:
        raise MissingDataError(f"Record lacks required field '{key}'", context)
    return record[key]


def build_hit(
    record: Mapping[str, Any],
    database: str,
    token_filter: TokenFilter,
    description_filter: DescriptionFilter,
) -> CandidateHit | None:
    """A candidate hit, or None if its description is blacklisted."""
    accession = _require(record, "accession", {"database": database})
    context = {"hit": accession, "database": database}
    description = description_filter.clean(_require(record, "description", context))
    if description is None:
        return None
    return CandidateHit(
        accession=accession,
        database=database,
        description=description,
        tokens=token_filter(description),
        bit_score=float(_require(record, "bit_score", context)),
        query_start=int(record.get("query_start", 1)),
        query_end=int(record.get("query_end", 1)),
        subject_start=int(record.get("subject_start", 1)),
        subject_end=int(record.get("subject_end", 1)),
        subject_length=int(record.get("subject_length", 1)),
    )


FILTER_KEYS = ("token_blacklist", "description_blacklist", "description_filter")


class HitFilters:
    """
    Token and description filters per source database.

    Args:
        token_blacklist: Default token blacklist, also applied to references.
        description_blacklist: Default description blacklist.
        description_filter: Default description filters.
        database_filters: Database name -> any of ``FILTER_KEYS``; a key given
            here replaces the default for hits from that database.
    """

    def __init__(
        self,
        token_blacklist: list[str] | None = None,
        description_blacklist: list[str] | None = None,
        description_filter: list[str] | None = None,
        database_filters: Mapping[str, Mapping[str, list[str]]] | None = None,
    ):
        defaults = {
            "token_blacklist": token_blacklist or [],
            "description_blacklist": description_blacklist or [],
            "description_filter": description_filter or [],
        }
        for database, overrides in (database_filters or {}).items():
            unknown = set(overrides) - set(FILTER_KEYS)
            if unknown:
                raise ConfigurationError(
                    "Unknown filter settings", {"database": database, "keys": sorted(unknown)}
                )
        self.token_filter, self.description_filter = self._build(defaults)
        self.by_database = {
            database: self._build({**defaults, **overrides})
            for database, overrides in (database_filters or {}).items()
        }

    @staticmethod
    def _build(options: Mapping[str, list[str]]) -> tuple[TokenFilter, DescriptionFilter]:
        return (
            TokenFilter(options["token_blacklist"]),
            DescriptionFilter(options["description_blacklist"], options["description_filter"]),
        )

    def for_database(self, database: str) -> tuple[TokenFilter, DescriptionFilter]:
        return self.by_database.get(database, (self.token_filter, self.description_filter))


def build_entity(record: Mapping[str, Any], filters: HitFilters) -> Entity:
    accession = _require(record, "accession", {})
    hits = {}
    for database, hit_records in record.get("hits", {}).items():
        token_filter, description_filter = filters.for_database(database)
        built = (build_hit(r, database, token_filter, description_filter) for r in hit_records)
        hits[database] = tuple(hit for hit in built if hit is not None)
    return Entity(
        accession=accession,
        length=int(_require(record, "length", {"entity": accession})),
        domains=frozenset(record.get("domains", ())),
        hits=hits,
    )


def build_reference(accession: str, record: Mapping[str, Any], token_filter: TokenFilter) -> Reference:
    description = record.get("description", "")
    go_terms = record.get("go_terms")
    return Reference(
        accession=accession,
        description=description,
        tokens=token_filter(description),
        go_terms=frozenset(go_terms) if go_terms is not None else None,
    )


def corpus_from_dict(
    data: Mapping[str, Any],
    token_blacklist: list[str] | None = None,
    description_blacklist: list[str] | None = None,
    description_filter: list[str] | None = None,
    database_filters: Mapping[str, Mapping[str, list[str]]] | None = None,
) -> tuple[EntityCorpus, DomainTable]:
    """Builds the corpus and its domain table from an already parsed document."""
    filters = HitFilters(token_blacklist, description_blacklist, description_filter, database_filters)

    entities = [build_entity(r, filters) for r in data.get("entities", [])]
    references = {
        accession: build_reference(accession, record, filters.token_filter)
        for accession, record in data.get("references", {}).items()
    }
    hit_go_terms = {acc: frozenset(terms) for acc, terms in data.get("hit_go_terms", {}).items()}
    table = DomainTable(data.get("domain_weights", {}), data.get("hit_domains", {}))
    return EntityCorpus(entities, references, hit_go_terms), table


def load_corpus(
    path: str | Path,
    token_blacklist: list[str] | None = None,
    description_blacklist: list[str] | None = None,
    description_filter: list[str] | None = None,
    database_filters: Mapping[str, Mapping[str, list[str]]] | None = None,
) -> tuple[EntityCorpus, DomainTable]:
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read corpus: {e}", {"path": str(path)}) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed corpus JSON: {e}", {"path": str(path)}) from e
    return corpus_from_dict(data, token_blacklist, description_blacklist, description_filter, database_filters)
