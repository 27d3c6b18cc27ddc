"""
Producer adapters.

A verification case talks to the producer under test through one of these:
- CallableProducer: a plain (sync or async) function ``HttpRequest -> HttpResponse``
- AsgiProducer: a FastAPI/Starlette app driven in-process through httpx
- HttpProducer: a live service reached at a base URL

Adapters never mutate the wrapped handler.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
from starlette.applications import Starlette

from contractual.contracts.model import HttpRequest, HttpResponse, decode_body, encode_body

Handler = Callable[[HttpRequest], Union[HttpResponse, Awaitable[HttpResponse]]]


class Producer:
    """Interface: send one concrete request, return the concrete response."""

    async def send(self, request: HttpRequest, timeout: Optional[float] = None) -> HttpResponse:
        raise NotImplementedError


class CallableProducer(Producer):
    def __init__(self, handler: Handler) -> None:
        self.handler = handler

    async def send(self, request: HttpRequest, timeout: Optional[float] = None) -> HttpResponse:
        if inspect.iscoroutinefunction(self.handler) or inspect.iscoroutinefunction(
            getattr(self.handler, "__call__", None)
        ):
            result = await self.handler(request)
        else:
            result = await asyncio.to_thread(self.handler, request)
            if inspect.isawaitable(result):
                result = await result
        if not isinstance(result, HttpResponse):
            raise TypeError(f"Producer handler returned {type(result).__name__}, expected HttpResponse")
        return result


def _request_kwargs(request: HttpRequest) -> dict:
    headers = dict(request.headers)
    body = request.body
    if body is not None and not isinstance(body, (str, bytes)):
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"
    return {
        "method": request.method,
        "url": request.url,
        "headers": headers,
        "content": encode_body(body) if body is not None else None,
    }


def _from_httpx(response: httpx.Response) -> HttpResponse:
    return HttpResponse(
        status=response.status_code,
        headers={key: value for key, value in response.headers.items()},
        body=decode_body(response.content, response.headers.get("content-type")),
    )


class HttpProducer(Producer):
    def __init__(self, base_url: str, *, client_kwargs: Optional[dict] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.client_kwargs = client_kwargs or {}

    def _client(self, timeout: Optional[float]) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, **self.client_kwargs)

    async def send(self, request: HttpRequest, timeout: Optional[float] = None) -> HttpResponse:
        async with self._client(timeout) as client:
            response = await client.request(**_request_kwargs(request))
        return _from_httpx(response)


class AsgiProducer(HttpProducer):
    def __init__(self, app: Any, *, base_url: str = "http://producer") -> None:
        super().__init__(base_url)
        self.app = app

    def _client(self, timeout: Optional[float]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url=self.base_url,
            timeout=timeout,
        )


def as_producer(target: Any) -> Producer:
    """Wrap ``target`` in the matching adapter."""
    if isinstance(target, Producer):
        return target
    if isinstance(target, str):
        return HttpProducer(target)
    if isinstance(target, Starlette):
        return AsgiProducer(target)
    if callable(target):
        return CallableProducer(target)
    raise TypeError(f"Cannot verify against {type(target).__name__}; pass a callable, an ASGI app or a base URL")
