import json

import pytest

from hrd_evolved.datasets import HitFilters, build_hit, corpus_from_dict, load_corpus
from hrd_evolved.errors import ConfigurationError, MissingDataError
from hrd_evolved.output import GeneticTrainerOutputWriter
from hrd_evolved.parameters import Parameters
from hrd_evolved.tokens import DescriptionFilter, TokenFilter, tokenize


def test_tokenize():
    assert tokenize("ATP-binding protein, Kinase") == ["atp", "binding", "protein", "kinase"]


def test_token_filter():
    token_filter = TokenFilter(["protein", r"\d+"])
    assert token_filter("Protein kinase 2 kinase domain protein") == ("kinase", "domain")
    assert token_filter.is_blacklisted("PROTEIN")
    assert not token_filter.is_blacklisted("proteins")


def test_description_filter():
    descriptions = DescriptionFilter(blacklist=["^uncharacterized"], filters=[r"\(fragment\)"])
    assert descriptions.clean("Uncharacterized protein") is None
    assert descriptions.clean("Protein kinase (Fragment) 2") == "Protein kinase 2"
    assert descriptions.clean("(fragment)") is None


def test_corpus_from_dict(corpus, table):
    assert len(corpus) == 2
    assert corpus.database_names == ["swissprot", "trembl"]
    q1 = corpus[0]
    assert q1.domains == frozenset({"D1", "D2"})
    assert [hit.accession for hit in q1.candidates] == ["P1", "T1"]
    assert q1.candidates[0].tokens == ("atp", "binding", "protein", "kinase")
    assert q1.candidates[1].overlap(q1.length) == 0.5
    assert corpus.reference("Q1").tokens == ("protein", "kinase")
    assert corpus.reference("Q3") is None
    assert corpus.go_terms("T2") == frozenset({"GO:4", "GO:5"})
    assert corpus.go_terms("X") == frozenset()
    assert len(table) == 3


def test_blacklisted_descriptions_are_dropped(corpus_data):
    corpus, _ = corpus_from_dict(
        corpus_data, token_blacklist=["protein"], description_blacklist=["hypothetical"]
    )
    q1 = corpus[0]
    assert [hit.accession for hit in q1.candidates] == ["P1"]
    assert q1.candidates[0].tokens == ("atp", "binding", "kinase")
    assert corpus.reference("Q1").tokens == ("kinase",)


def test_filters_per_database(corpus_data):
    corpus, _ = corpus_from_dict(
        corpus_data,
        token_blacklist=["protein"],
        database_filters={"trembl": {"description_blacklist": ["hypothetical"], "token_blacklist": ["zinc"]}},
    )
    q1, q2 = corpus
    assert [hit.accession for hit in q1.candidates] == ["P1"]
    assert q1.candidates[0].tokens == ("atp", "binding", "kinase")
    assert q2.candidates[1].tokens == ("finger", "transcription", "factor")
    # references use the default token blacklist
    assert corpus.reference("Q1").tokens == ("kinase",)


def test_unknown_filter_setting():
    with pytest.raises(ConfigurationError):
        HitFilters(database_filters={"trembl": {"filter": ["x"]}})


def test_hit_without_bit_score():
    with pytest.raises(MissingDataError) as excinfo:
        build_hit({"accession": "P1", "description": "kinase"}, "swissprot", TokenFilter(), DescriptionFilter())
    assert excinfo.value.details == {"hit": "P1", "database": "swissprot"}


def test_entity_without_length(corpus_data):
    del corpus_data["entities"][1]["length"]
    with pytest.raises(MissingDataError):
        corpus_from_dict(corpus_data)


def test_load_corpus(tmp_path, corpus_data):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps(corpus_data))
    corpus, table = load_corpus(path)
    assert [entity.accession for entity in corpus] == ["Q1", "Q2"]
    assert table.weight("D2") == 2.0

    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_corpus(path)
    with pytest.raises(ConfigurationError):
        load_corpus(tmp_path / "missing.json")


def test_output_writer(tmp_path, space):
    writer = GeneticTrainerOutputWriter(tmp_path / "out", list(space.database_names))
    best = Parameters(space=space, blast_db_weights={"swissprot": 653.0, "trembl": 904.0})
    best.avg_evaluation_score = 0.5
    writer.write_generation(1, best, 0.0, "seed")
    writer.write_generation(2, best, 0.0, "seed")

    header, *rows = writer.path_log.read_text().splitlines()
    assert header.split("\t")[-2:] == ["swissprot_weight", "trembl_weight"]
    assert len(rows) == 2
    assert rows[1].split("\t")[:3] == ["2", "0.500000", "NA"]
