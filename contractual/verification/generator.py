"""
Verification test generator.

``build_verification(contract)`` compiles a contract into a ``VerificationCase``:
send the contract's example request to the producer under test, capture the
actual response and check it against the contract's response pattern.

Failures are never swallowed. A ``VerificationResult`` carries either a
``MatchFailure`` pinpointing the first failing field or a ``Timeout`` when the
producer did not answer in time; ``raise_for_failure()`` raises it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

import httpx

from contractual.contracts.model import Contract, HttpRequest, HttpResponse
from contractual.exceptions import MatchFailure, Timeout
from contractual.matching.engine import match_response
from contractual.utils.config_loader import VerificationConfig, load_config
from contractual.verification.producers import as_producer

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    contract: str
    passed: bool
    failure: Optional[Union[MatchFailure, Timeout]] = None
    response: Optional[HttpResponse] = None
    elapsed_seconds: float = 0.0

    @property
    def timed_out(self) -> bool:
        return isinstance(self.failure, Timeout)

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure

    def describe(self) -> str:
        if self.passed:
            return f"{self.contract}: passed in {self.elapsed_seconds:.3f}s"
        return f"{self.contract}: FAILED {self.failure}"


class VerificationCase:
    """A runnable producer-side check generated from one contract."""

    def __init__(self, contract: Contract) -> None:
        self.contract = contract

    @property
    def name(self) -> str:
        return self.contract.name

    def request(self) -> HttpRequest:
        return self.contract.example_request()

    async def arun(self, producer: Any, timeout: Optional[float] = None) -> VerificationResult:
        """Drive ``producer`` with the example request and check its response."""
        adapter = as_producer(producer)
        started = time.monotonic()
        try:
            send = adapter.send(self.request(), timeout=timeout)
            actual = await asyncio.wait_for(send, timeout) if timeout else await send
        except (asyncio.TimeoutError, httpx.TimeoutException):
            elapsed = time.monotonic() - started
            logger.warning("Verification of %s timed out after %.3fs", self.name, elapsed)
            return VerificationResult(self.name, False, Timeout(self.name, timeout), None, elapsed)

        elapsed = time.monotonic() - started
        result = match_response(self.contract.response, actual)
        if result.matched:
            logger.info("Verification of %s passed", self.name)
            return VerificationResult(self.name, True, None, actual, elapsed)

        logger.info("Verification of %s failed: %s", self.name, result.failure)
        return VerificationResult(self.name, False, result.failure, actual, elapsed)

    def run(self, producer: Any, timeout: Optional[float] = None) -> VerificationResult:
        """Synchronous wrapper around :meth:`arun` for harnesses without an event loop."""
        return asyncio.run(self.arun(producer, timeout=timeout))

    def __repr__(self) -> str:
        return f"VerificationCase({self.name!r})"


def build_verification(contract: Contract) -> VerificationCase:
    return VerificationCase(contract)


def build_verification_suite(contracts: Iterable[Contract]) -> List[VerificationCase]:
    return [build_verification(contract) for contract in contracts]


async def verify_all(cases: Iterable[VerificationCase], producer: Any,
                     timeout: Optional[float] = None,
                     config: Optional[VerificationConfig] = None) -> List[VerificationResult]:
    """Run cases one after another against the same producer.

    Without an explicit ``timeout`` the configured ``verification.timeout_seconds``
    applies (``load_config()`` when no ``config`` is passed).
    """
    if timeout is None:
        timeout = (config or load_config().verification).timeout_seconds
    results = []
    for case in cases:
        results.append(await case.arun(producer, timeout=timeout))
    return results
