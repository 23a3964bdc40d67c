import copy
import logging

import pytest

from hrd_evolved.config import TrainerConfig
from hrd_evolved.datasets import corpus_from_dict

DATABASE_WEIGHTS = {"swissprot": 653.0, "trembl": 904.0}

CORPUS_DATA = {
    "domain_weights": {"D1": 1.0, "D2": 2.0, "D3": 0.5},
    "hit_domains": {"P1": ["D1", "D2"], "T1": ["D3"]},
    "hit_go_terms": {
        "P1": ["GO:1", "GO:2"],
        "T1": ["GO:3"],
        "P2": ["GO:4"],
        "T2": ["GO:4", "GO:5"],
    },
    "entities": [
        {
            "accession": "Q1",
            "length": 100,
            "domains": ["D1", "D2"],
            "hits": {
                "swissprot": [
                    {"accession": "P1", "description": "ATP binding protein kinase", "bit_score": 200.0,
                     "query_start": 1, "query_end": 100, "subject_start": 1, "subject_end": 100,
                     "subject_length": 100},
                ],
                "trembl": [
                    {"accession": "T1", "description": "Hypothetical protein", "bit_score": 50.0,
                     "query_start": 1, "query_end": 50, "subject_start": 1, "subject_end": 50,
                     "subject_length": 100},
                ],
            },
        },
        {
            "accession": "Q2",
            "length": 200,
            "hits": {
                "swissprot": [
                    {"accession": "P2", "description": "Transcription factor", "bit_score": 100.0,
                     "query_start": 1, "query_end": 200, "subject_start": 1, "subject_end": 200,
                     "subject_length": 200},
                ],
                "trembl": [
                    {"accession": "T2", "description": "Zinc finger transcription factor", "bit_score": 120.0,
                     "query_start": 1, "query_end": 100, "subject_start": 1, "subject_end": 100,
                     "subject_length": 100},
                ],
            },
        },
    ],
    "references": {
        "Q1": {"description": "Protein kinase", "go_terms": ["GO:1"]},
        "Q2": {"description": "Transcription factor", "go_terms": ["GO:4"]},
    },
}


@pytest.fixture
def corpus_data():
    return copy.deepcopy(CORPUS_DATA)


@pytest.fixture
def corpus_and_table(corpus_data):
    return corpus_from_dict(corpus_data)


@pytest.fixture
def corpus(corpus_and_table):
    return corpus_and_table[0]


@pytest.fixture
def table(corpus_and_table):
    return corpus_and_table[1]


@pytest.fixture
def make_config():
    def _make(**overrides):
        options = {
            "population_size": 10,
            "number_of_generations": 3,
            "seed": 7,
            "max_workers": 1,
            "parameters": {"blast_db_weights": dict(DATABASE_WEIGHTS)},
        }
        options.update(overrides)
        return TrainerConfig(**options)

    return _make


@pytest.fixture
def space(make_config):
    return make_config().parameter_space()


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("hrd_evolved")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
