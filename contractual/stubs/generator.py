"""Compile contracts into stub definitions."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from contractual.contracts.model import Contract, HttpResponse, RequestPattern
from contractual.matching.engine import request_specificity


@dataclass(frozen=True)
class StubDefinition:
    """A request pattern used only for matching, paired with a literal response.

    The response is returned verbatim; matchers declared on the response side
    only affect producer verification, never stub output.
    """

    contract_name: str
    request: RequestPattern
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    priority: Optional[int] = None
    specificity: int = 0

    def response(self) -> HttpResponse:
        return HttpResponse(status=self.status, headers=dict(self.headers), body=copy.deepcopy(self.body))


def build_stub(contract: Contract) -> StubDefinition:
    return StubDefinition(
        contract_name=contract.name,
        request=contract.request,
        status=contract.response.status,
        headers=dict(contract.response.example_headers),
        body=copy.deepcopy(contract.response.body),
        priority=contract.priority,
        specificity=request_specificity(contract.request),
    )


def build_stubs(contracts: Iterable[Contract]) -> List[StubDefinition]:
    return [build_stub(contract) for contract in contracts]
