"""Pytest fixtures shared by the contract, stub and verification tests."""

from pathlib import Path

import pytest

from contractual.contracts.parser import parse
from contractual.stubs import StubRegistry

PRODUCER = "com.example:person-service"
CONSUMER = "com.example:person-client"
CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"


def person_contract_source(name, age, regex, status, priority=None):
    source = {
        "name": name,
        "consumer": CONSUMER,
        "producer": PRODUCER,
        "request": {
            "method": "POST",
            "url": "/check",
            "headers": {"Content-Type": "applicationJson()"},
            "body": {"age": age},
            "bodyMatchers": [{"path": "$.age", "matcher": f'byRegex("{regex}")'}],
        },
        "response": {
            "status": 200,
            "headers": {"Content-Type": "applicationJson()"},
            "body": {"status": status},
        },
    }
    if priority is not None:
        source["priority"] = priority
    return source


@pytest.fixture
def old_person_contract():
    return parse(person_contract_source("should_return_ok_for_old_person", 50, "[1-9][0-9]", "OK"))


@pytest.fixture
def young_person_contract():
    return parse(person_contract_source("should_return_not_ok_for_young_person", 10, "[0-1][0-9]", "NOT_OK", priority=1))


@pytest.fixture
def person_contracts(old_person_contract, young_person_contract):
    return [old_person_contract, young_person_contract]


@pytest.fixture
def registry():
    """Fresh registry per test; nothing is shared between tests."""
    return StubRegistry()


@pytest.fixture
def contracts_dir():
    return CONTRACTS_DIR
