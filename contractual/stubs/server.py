"""
Stub server.

Answers requests that resemble an installed contract's request with that
contract's literal response. Selection rules, in order:

1. only stubs whose request pattern matches are considered
2. the lowest explicit ``priority`` wins
3. then the highest specificity (most constraints satisfied)
4. anything still tied is an authoring error and raises ``AmbiguousMatch``

A request that matches nothing raises ``NoMatch``; the HTTP surface answers it
with a diagnostic body and records it so the consumer test can fail loudly.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import Response

from contractual.contracts.model import HttpRequest, HttpResponse, decode_body, encode_body
from contractual.error_handler import ErrorHandler
from contractual.exceptions import AmbiguousMatch, MatchFailure, NoMatch, StubNotFound
from contractual.matching.engine import match_request
from contractual.stubs.generator import StubDefinition
from contractual.stubs.registry import StubRegistry

logger = logging.getLogger(__name__)

STUB_HEADER = "X-Contract-Stub"
HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE"]

_NO_PRIORITY = float("inf")


def select_stub(definitions: Sequence[StubDefinition], request: HttpRequest) -> StubDefinition:
    """Pick the stub that answers ``request``; raise NoMatch or AmbiguousMatch otherwise."""
    candidates: List[StubDefinition] = []
    mismatches: List[Tuple[str, MatchFailure]] = []

    for definition in definitions:
        result = match_request(definition.request, request)
        if result.matched:
            candidates.append(definition)
        elif result.failure is not None:
            mismatches.append((definition.contract_name, result.failure))

    if not candidates:
        raise NoMatch(request.method, request.url, mismatches)

    def rank(definition: StubDefinition):
        priority = _NO_PRIORITY if definition.priority is None else definition.priority
        return priority, -definition.specificity

    candidates.sort(key=rank)
    best_rank = rank(candidates[0])
    tied = [definition for definition in candidates if rank(definition) == best_rank]
    if len(tied) > 1:
        raise AmbiguousMatch([definition.contract_name for definition in tied], -best_rank[1])
    return candidates[0]


class StubServer:
    """Serves one producer's installed stubs out of a registry."""

    def __init__(self, registry: StubRegistry, producer_id: str, *, max_unmatched: int = 100) -> None:
        self.registry = registry
        self.producer_id = producer_id
        self.max_unmatched = max_unmatched
        # Oldest misses are kept; later ones are only counted.
        self._unmatched: List[NoMatch] = []
        self._unmatched_count = 0
        self._unmatched_lock = threading.Lock()

    def serve(self, request: HttpRequest) -> HttpResponse:
        definitions = self.registry.resolve(self.producer_id)
        try:
            definition = select_stub(definitions, request)
        except NoMatch as exc:
            with self._unmatched_lock:
                self._unmatched_count += 1
                if len(self._unmatched) < self.max_unmatched:
                    self._unmatched.append(exc)
            raise
        logger.debug("%s %s answered by %s", request.method, request.url, definition.contract_name)
        return definition.response()

    @property
    def unmatched(self) -> List[NoMatch]:
        with self._unmatched_lock:
            return list(self._unmatched)

    @property
    def unmatched_count(self) -> int:
        return self._unmatched_count

    def reset_unmatched(self) -> None:
        with self._unmatched_lock:
            self._unmatched.clear()
            self._unmatched_count = 0

    def raise_for_unmatched(self) -> None:
        """Raise the first recorded NoMatch, if any request went unanswered."""
        unmatched = self.unmatched
        if unmatched:
            raise unmatched[0]


async def to_http_request(request: Request) -> HttpRequest:
    raw = await request.body()
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return HttpRequest(
        method=request.method,
        url=url,
        headers={key: value for key, value in request.headers.items()},
        body=decode_body(raw, request.headers.get("content-type")),
    )


def to_response(response: HttpResponse) -> Response:
    headers = dict(response.headers)
    media_type: Optional[str] = None
    if response.header("content-type") is None and response.body is not None and not isinstance(response.body, str):
        media_type = "application/json"
    return Response(
        content=encode_body(response.body),
        status_code=response.status,
        headers=headers,
        media_type=media_type,
    )


def _error_response(payload: Dict[str, Any], status_code: int, marker: str) -> Response:
    return Response(
        content=json.dumps(payload, default=str),
        status_code=status_code,
        headers={STUB_HEADER: marker},
        media_type="application/json",
    )


def create_stub_app(
    registry: StubRegistry,
    producer_id: str,
    *,
    no_match_status: int = 404,
    ambiguous_status: int = 409,
    server: Optional[StubServer] = None,
) -> FastAPI:
    """Expose a producer's installed stubs as an ASGI app with a single catch-all route."""
    stub_server = server or StubServer(registry, producer_id)
    error_handler = ErrorHandler()
    app = FastAPI(title=f"Contract stubs for {producer_id}", openapi_url=None, docs_url=None, redoc_url=None)
    app.state.stub_server = stub_server

    @app.api_route("/{path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def answer(request: Request):
        http_request = await to_http_request(request)
        context = {"producer": producer_id, "method": http_request.method, "url": http_request.url}
        try:
            return to_response(stub_server.serve(http_request))
        except NoMatch as exc:
            return _error_response(error_handler.handle_exception(exc, context), no_match_status, "no-match")
        except AmbiguousMatch as exc:
            return _error_response(error_handler.handle_exception(exc, context), ambiguous_status, "ambiguous")
        except StubNotFound as exc:
            return _error_response(error_handler.handle_exception(exc, context), no_match_status, "not-installed")

    return app
