import socket

import httpx
import pytest

from contractual.exceptions import NoMatch
from contractual.stubs import StubRunner, build_stub, build_stubs
from contractual.utils.config_loader import StubServerConfig

from conftest import PRODUCER


@pytest.fixture
def runner(registry):
    with StubRunner(registry, StubServerConfig(startup_timeout_seconds=10)) as runner:
        yield runner


def test_installed_stub_is_reachable_over_http(runner, person_contracts):
    endpoint = runner.install(PRODUCER, build_stubs(person_contracts))

    assert endpoint.producer_id == PRODUCER
    assert endpoint.port > 0
    assert runner.endpoint(PRODUCER) == endpoint

    with httpx.Client(base_url=endpoint.url) as client:
        old = client.post("/check", json={"age": 50})
        young = client.post("/check", json={"age": 10})

    assert old.status_code == 200
    assert old.json() == {"status": "OK"}
    assert young.json() == {"status": "NOT_OK"}


def test_reinstall_reuses_the_server_and_serves_the_new_set(runner, old_person_contract, young_person_contract):
    first = runner.install(PRODUCER, [build_stub(old_person_contract)])
    second = runner.install(PRODUCER, [build_stub(young_person_contract)])

    assert first == second
    with httpx.Client(base_url=second.url) as client:
        response = client.post("/check", json={"age": 50})

    assert response.status_code == 404
    assert response.headers["x-contract-stub"] == "no-match"


def test_unmatched_requests_fail_the_consumer_test(runner, person_contracts):
    endpoint = runner.install(PRODUCER, build_stubs(person_contracts))

    with httpx.Client(base_url=endpoint.url) as client:
        client.post("/check", json={"age": 5})

    with pytest.raises(NoMatch):
        runner.raise_for_unmatched()


def test_stop_uninstalls_the_producer(runner, registry, person_contracts):
    runner.install(PRODUCER, build_stubs(person_contracts))

    runner.stop(PRODUCER)

    assert PRODUCER not in registry
    assert runner.endpoint(PRODUCER) is None
    assert runner.running_producers() == []


def test_bind_failure_leaves_nothing_installed(registry, person_contracts):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]

        runner = StubRunner(registry, StubServerConfig(port=port))
        with pytest.raises(OSError):
            runner.install(PRODUCER, build_stubs(person_contracts))

    assert PRODUCER not in registry
    assert runner.running_producers() == []


def test_stub_server_exposes_the_miss_count(runner, person_contracts):
    endpoint = runner.install(PRODUCER, build_stubs(person_contracts))

    with httpx.Client(base_url=endpoint.url) as client:
        client.post("/check", json={"age": 5})
        client.post("/check", json={"age": 50})

    assert runner.stub_server(PRODUCER).unmatched_count == 1
    assert runner.stub_server("com.example:other") is None
