import dataclasses

import pytest
from fastapi.testclient import TestClient

from contractual.contracts.model import HttpRequest
from contractual.contracts.parser import parse
from contractual.exceptions import AmbiguousMatch, NoMatch, StubNotFound
from contractual.matching.engine import request_specificity
from contractual.stubs import StubServer, build_stub, build_stubs, create_stub_app, select_stub

from conftest import PRODUCER, person_contract_source


def _age_request(age):
    return HttpRequest("POST", "/check", {"Content-Type": "application/json"}, {"age": age})


@pytest.fixture
def server(registry, person_contracts):
    registry.install(PRODUCER, build_stubs(person_contracts))
    return StubServer(registry, PRODUCER)


def test_stub_round_trips_its_own_example(person_contracts, registry):
    for contract in person_contracts:
        registry.install(PRODUCER, [build_stub(contract)])
        response = StubServer(registry, PRODUCER).serve(contract.example_request())
        assert response == contract.example_response()


def test_age_scenario_resolves_old_and_young(server):
    assert server.serve(_age_request(50)).body == {"status": "OK"}
    assert server.serve(_age_request(99)).body == {"status": "OK"}
    assert server.serve(_age_request(10)).body == {"status": "NOT_OK"}


def test_single_digit_age_matches_no_stub(server):
    with pytest.raises(NoMatch) as exc_info:
        server.serve(_age_request(5))

    mismatches = dict(exc_info.value.mismatches)
    assert set(mismatches) == {"should_return_ok_for_old_person", "should_return_not_ok_for_young_person"}
    assert all(failure.field == "$.age" for failure in mismatches.values())
    assert server.unmatched == [exc_info.value]


def test_raise_for_unmatched_surfaces_silent_misses(server):
    server.raise_for_unmatched()
    with pytest.raises(NoMatch):
        server.serve(_age_request(5))
    with pytest.raises(NoMatch):
        server.raise_for_unmatched()
    server.reset_unmatched()
    server.raise_for_unmatched()


def test_equally_specific_matches_are_an_authoring_error():
    old = parse(person_contract_source("old", 50, "[1-9][0-9]", "OK"))
    young = parse(person_contract_source("young", 10, "[0-1][0-9]", "NOT_OK"))

    with pytest.raises(AmbiguousMatch) as exc_info:
        select_stub(build_stubs([old, young]), _age_request(10))
    assert exc_info.value.contracts == ["old", "young"]


def test_more_specific_contract_wins():
    generic = parse({
        "name": "any_check",
        "consumer": "com.example:person-client",
        "producer": PRODUCER,
        "request": {"method": "POST", "url": "/check"},
        "response": {"status": 200, "body": {"status": "UNKNOWN"}},
    })
    specific = parse(person_contract_source("old", 50, "[1-9][0-9]", "OK"))
    stubs = build_stubs([generic, specific])

    assert select_stub(stubs, _age_request(42)).contract_name == "old"
    assert select_stub(stubs, _age_request(7)).contract_name == "any_check"
    assert select_stub(list(reversed(stubs)), _age_request(42)).contract_name == "old"


def test_priority_beats_specificity():
    generic = parse({
        "name": "maintenance",
        "consumer": "com.example:person-client",
        "producer": PRODUCER,
        "priority": 1,
        "request": {"method": "POST", "url": "/check"},
        "response": {"status": 503},
    })
    specific = parse(person_contract_source("old", 50, "[1-9][0-9]", "OK"))

    assert select_stub(build_stubs([specific, generic]), _age_request(42)).contract_name == "maintenance"


def test_stub_response_is_a_copy(server):
    first = server.serve(_age_request(50))
    first.body["status"] = "MUTATED"
    assert server.serve(_age_request(50)).body == {"status": "OK"}


def test_serving_unknown_producer_raises(registry):
    with pytest.raises(StubNotFound):
        StubServer(registry, "com.example:nobody").serve(_age_request(50))


def test_http_app_answers_like_the_contract(server, registry):
    client = TestClient(create_stub_app(registry, PRODUCER, server=server))

    response = client.post("/check", json={"age": 50})
    assert response.status_code == 200
    assert response.json() == {"status": "OK"}
    assert response.headers["content-type"].startswith("application/json")

    response = client.post("/check", json={"age": 10})
    assert response.json() == {"status": "NOT_OK"}


def test_http_app_marks_no_match_distinctly(server, registry):
    client = TestClient(create_stub_app(registry, PRODUCER, server=server, no_match_status=418))

    response = client.post("/check", json={"age": 5})

    assert response.status_code == 418
    assert response.headers["x-contract-stub"] == "no-match"
    body = response.json()
    assert body["metadata"]["error"] == "NoMatch"
    assert {m["contract"] for m in body["metadata"]["mismatches"]} == {
        "should_return_ok_for_old_person",
        "should_return_not_ok_for_young_person",
    }
    assert len(server.unmatched) == 1


def test_http_app_marks_ambiguous_matches(registry):
    old = parse(person_contract_source("old", 50, "[1-9][0-9]", "OK"))
    young = parse(person_contract_source("young", 10, "[0-1][0-9]", "NOT_OK"))
    registry.install(PRODUCER, build_stubs([old, young]))
    client = TestClient(create_stub_app(registry, PRODUCER))

    response = client.post("/check", json={"age": 15})

    assert response.status_code == 409
    assert response.headers["x-contract-stub"] == "ambiguous"
    assert response.json()["metadata"]["contracts"] == ["old", "young"]


def test_http_app_reports_missing_installation(registry):
    client = TestClient(create_stub_app(registry, PRODUCER))

    response = client.get("/anything")

    assert response.status_code == 404
    assert response.headers["x-contract-stub"] == "not-installed"


def test_stub_carries_the_request_specificity(old_person_contract):
    stub = build_stub(old_person_contract)
    assert stub.specificity == request_specificity(old_person_contract.request) == 5


def test_selection_ranks_by_the_stub_specificity():
    old = build_stub(parse(person_contract_source("old", 50, "[1-9][0-9]", "OK")))
    young = build_stub(parse(person_contract_source("young", 10, "[0-1][0-9]", "NOT_OK")))

    boosted = dataclasses.replace(young, specificity=young.specificity + 1)

    assert select_stub([old, boosted], _age_request(15)).contract_name == "young"


def test_unmatched_history_is_capped_but_counted(registry, person_contracts):
    registry.install(PRODUCER, build_stubs(person_contracts))
    server = StubServer(registry, PRODUCER, max_unmatched=2)

    for age in (1, 2, 3):
        with pytest.raises(NoMatch):
            server.serve(_age_request(age))

    assert len(server.unmatched) == 2
    assert server.unmatched_count == 3
    assert server.unmatched[0].mismatches[0][1].actual == 1

    server.reset_unmatched()
    assert server.unmatched_count == 0
