"""
Error taxonomy for contract parsing, matching, stubbing and verification.

- ParseError: a contract source is malformed (fatal for that one contract)
- MatchFailure: a concrete request/response disagrees with a pattern
- NoMatch: the stub server has no contract for a request at all
- AmbiguousMatch: two or more stubs match equally well (authoring error)
- Timeout: the producer under verification did not answer in time
- StubNotFound: nothing is installed for a producer identity
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple


class ContractError(Exception):
    """Base class for every error raised by contractual."""

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ParseError(ContractError):
    def __init__(self, field: str, reason: str, *, source: Optional[str] = None) -> None:
        self.field = field
        self.reason = reason
        self.source = source
        location = f"{source}: " if source else ""
        super().__init__(f"{location}{field}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"field": self.field, "reason": self.reason, "source": self.source})
        return payload


@dataclass(eq=False)
class MatchFailure(ContractError):
    """First field of a request/response that did not satisfy its pattern.

    Attributes:
        field: ``method``, ``url``, ``status``, ``header:<name>``, ``body`` or a JSON path.
        matcher: matcher kind that rejected the value (``equality``, ``regex``, ``type``,
            ``absence``, ``presence``, ``structure``).
        expected: what the pattern asked for.
        actual: what the candidate carried.
        reason: human-readable explanation.
    """

    field: str
    matcher: str
    expected: Any
    actual: Any
    reason: str = ""

    def __str__(self) -> str:
        text = f"{self.field}: expected {self.matcher} {self.expected!r}, got {self.actual!r}"
        if self.reason:
            text = f"{text} ({self.reason})"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "MatchFailure",
            "field": self.field,
            "matcher": self.matcher,
            "expected": self.expected,
            "actual": self.actual,
            "reason": self.reason,
        }


class NoMatch(ContractError):
    """Raised by the stub server when no installed contract matches a request."""

    def __init__(self, method: str, url: str, mismatches: Optional[Sequence[Tuple[str, MatchFailure]]] = None) -> None:
        self.method = method
        self.url = url
        self.mismatches: List[Tuple[str, MatchFailure]] = list(mismatches or [])
        super().__init__(f"No stub matches {method} {url} ({len(self.mismatches)} stubs checked)")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({
            "method": self.method,
            "url": self.url,
            "mismatches": [
                {"contract": name, **failure.to_dict()} for name, failure in self.mismatches
            ],
        })
        return payload


class AmbiguousMatch(ContractError):
    """Raised when equally specific stubs match the same request."""

    def __init__(self, contracts: Sequence[str], specificity: int) -> None:
        self.contracts = list(contracts)
        self.specificity = specificity
        super().__init__(
            f"Contracts {', '.join(self.contracts)} match equally (specificity {specificity}); "
            "give one of them a priority or a narrower request pattern"
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"contracts": self.contracts, "specificity": self.specificity})
        return payload


class Timeout(ContractError):
    def __init__(self, contract: str, timeout: Optional[float]) -> None:
        self.contract = contract
        self.timeout = timeout
        super().__init__(f"Producer did not respond to '{contract}' within {timeout}s")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"contract": self.contract, "timeout": self.timeout})
        return payload


class StubNotFound(ContractError, LookupError):
    def __init__(self, producer_id: str, available: Sequence[str] = ()) -> None:
        self.producer_id = producer_id
        self.available = sorted(available)
        listing = ", ".join(self.available) or "none"
        super().__init__(f"No stubs installed for producer {producer_id!r}. Available: {listing}")


__all__ = [
    "ContractError",
    "ParseError",
    "MatchFailure",
    "NoMatch",
    "AmbiguousMatch",
    "Timeout",
    "StubNotFound",
]
