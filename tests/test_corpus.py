import yaml

from contractual.contracts.corpus import Corpus, load_corpus
from contractual.contracts.parser import parse
from contractual.stubs.generator import StubDefinition
from contractual.verification.generator import VerificationCase

from conftest import PRODUCER, person_contract_source


def _write(path, source):
    path.write_text(yaml.safe_dump(source, sort_keys=False), encoding="utf-8")


def test_repository_contracts_load_cleanly(contracts_dir):
    result = load_corpus(contracts_dir)

    assert result.ok, result.errors
    assert result.corpus.producers() == [PRODUCER]
    names = [c.name for c in result.corpus.for_producer(PRODUCER)]
    assert names == ["should_return_not_ok_for_young_person", "should_return_ok_for_old_person"]
    assert result.corpus.collisions() == []


def test_one_bad_contract_does_not_block_the_others(tmp_path):
    _write(tmp_path / "good.yml", person_contract_source("good", 50, "[1-9][0-9]", "OK"))
    bad = person_contract_source("bad", 50, "[1-9][0-9]", "OK")
    bad["request"]["bodyMatchers"] = [{"path": "$.weight", "matcher": 'byRegex("[0-9]+")'}]
    _write(tmp_path / "bad.yml", bad)
    (tmp_path / "notes.txt").write_text("not a contract", encoding="utf-8")

    result = load_corpus(tmp_path)

    assert not result.ok
    assert len(result.errors) == 1
    assert result.errors[0].source == str(tmp_path / "bad.yml")
    assert [c.name for c in result.corpus] == ["good"]


def test_invalid_yaml_file_is_reported_per_file(tmp_path):
    (tmp_path / "broken.yaml").write_text("name: [unclosed\n", encoding="utf-8")
    _write(tmp_path / "good.yml", person_contract_source("good", 50, "[1-9][0-9]", "OK"))

    result = load_corpus(tmp_path)

    assert len(result.errors) == 1
    assert result.errors[0].field == "document"
    assert len(result.corpus) == 1


def test_ignored_contracts_are_skipped(tmp_path):
    source = person_contract_source("parked", 50, "[1-9][0-9]", "OK")
    source["ignored"] = True
    _write(tmp_path / "parked.yml", source)

    result = load_corpus(tmp_path)

    assert result.ok
    assert len(result.corpus) == 0
    assert result.skipped == ["parked"]


def test_missing_path_is_an_error(tmp_path):
    result = load_corpus(tmp_path / "nope")
    assert result.errors[0].field == "path"


def test_duplicate_names_for_one_producer_are_rejected(tmp_path):
    _write(tmp_path / "a.yml", person_contract_source("same", 50, "[1-9][0-9]", "OK"))
    _write(tmp_path / "b.yml", person_contract_source("same", 10, "[0-1][0-9]", "NOT_OK"))

    result = load_corpus(tmp_path)

    assert len(result.corpus) == 1
    assert result.errors[0].field == "name"


def test_identical_request_patterns_are_reported_as_collisions():
    first = parse(person_contract_source("first", 50, "[1-9][0-9]", "OK"))
    second = parse(person_contract_source("second", 50, "[1-9][0-9]", "ALSO_OK"))
    prioritised = parse(person_contract_source("third", 50, "[1-9][0-9]", "OK", priority=3))

    corpus = Corpus([first, second, prioritised])

    assert corpus.collisions() == [("first", "second")]


def test_corpus_compiles_stubs_and_verification_suite(person_contracts):
    corpus = Corpus(person_contracts)

    stubs = corpus.stubs_for(PRODUCER)
    cases = corpus.verification_suite(PRODUCER)

    assert all(isinstance(stub, StubDefinition) for stub in stubs)
    assert [stub.contract_name for stub in stubs] == [c.name for c in person_contracts]
    assert all(isinstance(case, VerificationCase) for case in cases)
    assert corpus.stubs_for("com.example:unknown") == []
