"""
Contract model.

Defines the in-memory shape of one consumer/producer contract:
- Matcher: tagged variant (equality, regex, type, absence, presence)
- RequestPattern / ResponsePattern: what a request must look like and what comes back
- Contract: identity + one request pattern + one response pattern
- HttpRequest / HttpResponse: concrete values flowing through stubs and producers

Contracts are frozen once built by the parser. Both the stub generator and the
verification generator read them; neither mutates them.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE")

TypeKind = Literal["string", "number", "boolean", "null", "object", "array"]

APPLICATION_JSON = "application/json"
APPLICATION_JSON_PATTERN = r"application/json(\s*;.*)?"


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class EqualityMatcher(_FrozenModel):
    kind: Literal["equality"] = "equality"
    value: Any = None


class RegexMatcher(_FrozenModel):
    kind: Literal["regex"] = "regex"
    pattern: str
    ignore_case: bool = False


class TypeMatcher(_FrozenModel):
    kind: Literal["type"] = "type"
    type: TypeKind


class AbsenceMatcher(_FrozenModel):
    kind: Literal["absence"] = "absence"


class PresenceMatcher(_FrozenModel):
    kind: Literal["presence"] = "presence"


Matcher = Annotated[
    Union[EqualityMatcher, RegexMatcher, TypeMatcher, AbsenceMatcher, PresenceMatcher],
    Field(discriminator="kind"),
]


def by_equality(value: Any) -> EqualityMatcher:
    return EqualityMatcher(value=value)


def by_regex(pattern: str, *, ignore_case: bool = False) -> RegexMatcher:
    return RegexMatcher(pattern=pattern, ignore_case=ignore_case)


def by_type(kind: str) -> TypeMatcher:
    return TypeMatcher(type=kind)


def absent() -> AbsenceMatcher:
    return AbsenceMatcher()


def present() -> PresenceMatcher:
    return PresenceMatcher()


def application_json() -> RegexMatcher:
    """Content-Type matcher accepting ``application/json`` with optional parameters."""
    return RegexMatcher(pattern=APPLICATION_JSON_PATTERN, ignore_case=True)


def describe_matcher(matcher: Matcher) -> str:
    if isinstance(matcher, EqualityMatcher):
        return f"byEquality({json.dumps(matcher.value, default=str)})"
    if isinstance(matcher, RegexMatcher):
        return f"byRegex({json.dumps(matcher.pattern)})"
    if isinstance(matcher, TypeMatcher):
        return f"byType({matcher.type})"
    if isinstance(matcher, AbsenceMatcher):
        return "absent()"
    return "present()"


# ---------------------------------------------------------------------------
# Patterns and contracts
# ---------------------------------------------------------------------------

class RequestPattern(_FrozenModel):
    method: str
    url: str
    url_pattern: Optional[str] = None
    headers: Dict[str, Matcher] = Field(default_factory=dict)
    example_headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    body_matchers: Dict[str, Matcher] = Field(default_factory=dict)

    @property
    def has_body(self) -> bool:
        return self.body is not None or bool(self.body_matchers)


class ResponsePattern(_FrozenModel):
    status: int = Field(default=200, ge=100, le=599)
    headers: Dict[str, Matcher] = Field(default_factory=dict)
    example_headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    body_matchers: Dict[str, Matcher] = Field(default_factory=dict)


class Contract(_FrozenModel):
    name: str
    consumer: str
    producer: str
    description: str = ""
    priority: Optional[int] = None
    request: RequestPattern
    response: ResponsePattern

    def example_request(self) -> "HttpRequest":
        """Concrete request built from the contract's own example values."""
        return HttpRequest(
            method=self.request.method,
            url=self.request.url,
            headers=dict(self.request.example_headers),
            body=copy.deepcopy(self.request.body),
        )

    def example_response(self) -> "HttpResponse":
        return HttpResponse(
            status=self.response.status,
            headers=dict(self.response.example_headers),
            body=copy.deepcopy(self.response.body),
        )


# ---------------------------------------------------------------------------
# Concrete HTTP values
# ---------------------------------------------------------------------------

def _lookup_header(headers: Dict[str, str], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


@dataclass
class HttpRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> Optional[str]:
        return _lookup_header(self.headers, name)


@dataclass
class HttpResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> Optional[str]:
        return _lookup_header(self.headers, name)


def encode_body(body: Any) -> bytes:
    """Serialise a body for the wire: strings verbatim, everything else as JSON."""
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


def decode_body(raw: bytes, content_type: Optional[str] = None) -> Any:
    """Parse a wire body back into JSON values when possible, else text."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    looks_json = content_type is None or "json" in content_type.lower()
    if looks_json:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


__all__ = [
    "SUPPORTED_METHODS",
    "APPLICATION_JSON",
    "EqualityMatcher",
    "RegexMatcher",
    "TypeMatcher",
    "AbsenceMatcher",
    "PresenceMatcher",
    "Matcher",
    "by_equality",
    "by_regex",
    "by_type",
    "absent",
    "present",
    "application_json",
    "describe_matcher",
    "RequestPattern",
    "ResponsePattern",
    "Contract",
    "HttpRequest",
    "HttpResponse",
    "encode_body",
    "decode_body",
]
