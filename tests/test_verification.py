import asyncio

import pytest
from fastapi import FastAPI

from contractual.contracts.model import HttpResponse
from contractual.exceptions import MatchFailure, Timeout
from contractual.stubs import StubRunner, build_stubs
from contractual.utils.config_loader import VerificationConfig
from contractual.verification import (
    AsgiProducer,
    CallableProducer,
    HttpProducer,
    as_producer,
    build_verification,
    build_verification_suite,
    verify_all,
)

from conftest import PRODUCER


def always_not_ok(request):
    return HttpResponse(200, {"Content-Type": "application/json"}, {"status": "NOT_OK"})


def threshold_app(threshold):
    app = FastAPI()

    @app.post("/check")
    async def check(payload: dict):
        return {"status": "OK" if payload["age"] >= threshold else "NOT_OK"}

    return app


@pytest.mark.asyncio
async def test_always_not_ok_producer_fails_only_the_old_person_contract(old_person_contract, young_person_contract):
    young = await build_verification(young_person_contract).arun(always_not_ok)
    old = await build_verification(old_person_contract).arun(always_not_ok)

    assert young.passed
    assert not old.passed
    assert isinstance(old.failure, MatchFailure)
    assert old.failure.field == "$.status"
    assert old.failure.expected == "OK"
    assert old.failure.actual == "NOT_OK"
    assert old.response.body == {"status": "NOT_OK"}


@pytest.mark.asyncio
async def test_asgi_producer_satisfying_both_contracts(person_contracts):
    results = await verify_all(build_verification_suite(person_contracts), threshold_app(20))

    assert [r.passed for r in results] == [True, True]
    assert all(r.failure is None for r in results)


@pytest.mark.asyncio
async def test_wrong_status_is_reported_before_the_body(old_person_contract):
    def broken(request):
        return HttpResponse(500, {"Content-Type": "application/json"}, {"status": "OK"})

    result = await build_verification(old_person_contract).arun(broken)

    assert result.failure.field == "status"
    assert result.failure.expected == 200
    assert result.failure.actual == 500


@pytest.mark.asyncio
async def test_missing_content_type_fails_on_the_header(old_person_contract):
    result = await build_verification(old_person_contract).arun(lambda request: HttpResponse(200, {}, {"status": "OK"}))

    assert result.failure.field == "header:Content-Type"


@pytest.mark.asyncio
async def test_slow_producer_times_out_instead_of_failing_a_match(old_person_contract):
    async def slow(request):
        await asyncio.sleep(2)
        return HttpResponse(200, {"Content-Type": "application/json"}, {"status": "OK"})

    result = await build_verification(old_person_contract).arun(slow, timeout=0.05)

    assert not result.passed
    assert result.timed_out
    assert isinstance(result.failure, Timeout)
    assert not isinstance(result.failure, MatchFailure)
    with pytest.raises(Timeout):
        result.raise_for_failure()


@pytest.mark.asyncio
async def test_producer_receives_the_example_request(old_person_contract):
    received = []

    async def recording(request):
        received.append(request)
        return HttpResponse(200, {"Content-Type": "application/json"}, {"status": "OK"})

    result = await build_verification(old_person_contract).arun(recording)

    assert result.passed
    assert received[0].method == "POST"
    assert received[0].url == "/check"
    assert received[0].body == {"age": 50}
    assert received[0].header("content-type") == "application/json"


@pytest.mark.asyncio
async def test_handler_returning_the_wrong_type_is_a_programming_error(old_person_contract):
    with pytest.raises(TypeError):
        await build_verification(old_person_contract).arun(lambda request: {"status": "OK"})


def test_run_is_usable_without_an_event_loop(old_person_contract):
    result = build_verification(old_person_contract).run(always_not_ok)

    assert not result.passed
    assert "FAILED" in result.describe()
    with pytest.raises(MatchFailure):
        result.raise_for_failure()


def test_as_producer_picks_the_adapter():
    assert isinstance(as_producer(always_not_ok), CallableProducer)
    assert isinstance(as_producer(threshold_app(20)), AsgiProducer)
    assert isinstance(as_producer("http://localhost:8080/"), HttpProducer)
    assert as_producer("http://localhost:8080/").base_url == "http://localhost:8080"
    with pytest.raises(TypeError):
        as_producer(42)


@pytest.mark.asyncio
async def test_stubs_verify_against_their_own_contracts(registry, person_contracts):
    with StubRunner(registry) as runner:
        endpoint = runner.install(PRODUCER, build_stubs(person_contracts))
        results = await verify_all(build_verification_suite(person_contracts), HttpProducer(endpoint.url), timeout=5)

    assert [r.passed for r in results] == [True, True]


async def _slow(request):
    await asyncio.sleep(2)
    return HttpResponse(200, {"Content-Type": "application/json"}, {"status": "OK"})


@pytest.mark.asyncio
async def test_verify_all_applies_the_configured_timeout(old_person_contract):
    config = VerificationConfig(timeout_seconds=0.05)

    results = await verify_all([build_verification(old_person_contract)], _slow, config=config)

    assert results[0].timed_out
    assert results[0].failure.timeout == 0.05


@pytest.mark.asyncio
async def test_verify_all_reads_the_timeout_from_the_environment(old_person_contract, monkeypatch):
    monkeypatch.setenv("CONTRACTUAL_VERIFICATION_TIMEOUT", "0.05")

    results = await verify_all([build_verification(old_person_contract)], _slow)

    assert results[0].timed_out


@pytest.mark.asyncio
async def test_explicit_timeout_wins_over_configuration(old_person_contract):
    results = await verify_all([build_verification(old_person_contract)], _slow, timeout=0.05,
                               config=VerificationConfig(timeout_seconds=30))

    assert results[0].failure.timeout == 0.05
