"""
Contract parser.

Turns a declarative contract definition (a mapping, YAML text or a YAML file)
into a frozen ``Contract``. Parsing is a pure transform: it either returns a
fully populated contract or raises ``ParseError`` naming the offending field.

Matcher specs accepted wherever a matcher is expected:
- ``byRegex("[1-9][0-9]")``
- ``byEquality(42)`` / ``byEquality("text")``
- ``byType(string)`` (string, number, boolean, null, object, array)
- ``absent()`` / ``present()``
- ``applicationJson()`` (lenient ``Content-Type: application/json``)
- mapping forms: ``{regex: ...}``, ``{equality: ...}``, ``{type: ...}``,
  ``{absent: true}``, ``{present: true}``
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from contractual.contracts import jsonpath
from contractual.contracts.model import (
    APPLICATION_JSON,
    SUPPORTED_METHODS,
    AbsenceMatcher,
    Contract,
    EqualityMatcher,
    Matcher,
    RequestPattern,
    ResponsePattern,
    absent,
    application_json,
    by_equality,
    by_regex,
    by_type,
    present,
)
from contractual.exceptions import ParseError
from contractual.matching.engine import evaluate

logger = logging.getLogger(__name__)

_CALL_RE = re.compile(r"^\s*(?P<name>[A-Za-z_]\w*)\s*\((?P<args>.*)\)\s*$", re.DOTALL)

Source = Union[Mapping[str, Any], str]


def parse(source: Source, *, origin: Optional[str] = None, default_name: Optional[str] = None) -> Contract:
    """Parse one contract definition.

    Args:
        source: mapping, or YAML/JSON text describing a single contract.
        origin: where the source came from (file path), used in error messages.
        default_name: contract name to use when the source does not declare one.

    Returns:
        The parsed, immutable Contract.

    Raises:
        ParseError: when a required field is missing or the example is inconsistent.
    """
    data = _load_mapping(source, origin)
    return _ContractBuilder(data, origin=origin, default_name=default_name).build()


def parse_file(path: Union[str, Path]) -> Contract:
    """Parse a YAML file holding exactly one contract; the name defaults to the file stem."""
    contracts = parse_file_all(path)
    if len(contracts) != 1:
        raise ParseError("document", f"expected exactly one contract, found {len(contracts)}", source=str(path))
    return contracts[0]


def parse_file_all(path: Union[str, Path], *, skip_ignored: bool = False) -> List[Contract]:
    """Parse every YAML document in ``path``; documents without a name get ``<stem>_<n>``.

    With ``skip_ignored`` documents declaring ``ignored: true`` are left out.
    """
    file_path = Path(path)
    contracts = []
    for default_name, document in load_documents(file_path):
        if skip_ignored and isinstance(document, Mapping) and is_ignored(document):
            logger.info("Skipping ignored contract %s in %s", document.get("name", default_name), file_path)
            continue
        contracts.append(parse(document, origin=str(file_path), default_name=default_name))
    logger.debug("Parsed %d contract(s) from %s", len(contracts), file_path)
    return contracts


def load_documents(path: Union[str, Path]) -> List[Tuple[str, Any]]:
    """Read the raw YAML documents of a contract file paired with their default names."""
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError("file", f"cannot read contract file: {exc}", source=str(file_path)) from exc

    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as exc:
        raise ParseError("document", f"invalid YAML: {exc}", source=str(file_path)) from exc

    if len(documents) == 1:
        return [(file_path.stem, documents[0])]
    return [(f"{file_path.stem}_{index}", doc) for index, doc in enumerate(documents)]


def is_ignored(source: Mapping[str, Any]) -> bool:
    return bool(source.get("ignored", False))


def _load_mapping(source: Source, origin: Optional[str]) -> Mapping[str, Any]:
    if isinstance(source, str):
        try:
            data = yaml.safe_load(source)
        except yaml.YAMLError as exc:
            raise ParseError("document", f"invalid YAML: {exc}", source=origin) from exc
    else:
        data = source
    if not isinstance(data, Mapping):
        raise ParseError("document", "contract must be a mapping", source=origin)
    return data


# ---------------------------------------------------------------------------
# Matcher specs
# ---------------------------------------------------------------------------

def parse_matcher(spec: Any, field: str = "matcher", *, origin: Optional[str] = None) -> Matcher:
    """Parse a textual or mapping matcher spec into a Matcher."""
    try:
        if isinstance(spec, Mapping):
            return _matcher_from_mapping(spec)
        if isinstance(spec, str):
            matcher = _matcher_from_call(spec)
            if matcher is not None:
                return matcher
        raise ValueError(f"unrecognised matcher spec {spec!r}")
    except (ValueError, ValidationError, re.error) as exc:
        raise ParseError(field, str(exc), source=origin) from exc


def is_matcher_spec(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    match = _CALL_RE.match(value)
    return bool(match) and match.group("name") in _CALL_BUILDERS


def _literal_arg(args: str) -> Any:
    text = args.strip()
    if not text:
        raise ValueError("matcher argument is required")
    try:
        return json.loads(text)
    except ValueError:
        pass
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def _regex(pattern: Any) -> Matcher:
    if not isinstance(pattern, str):
        raise ValueError(f"regex pattern must be a string, got {pattern!r}")
    re.compile(pattern)
    return by_regex(pattern)


_CALL_BUILDERS = {
    "byRegex": lambda args: _regex(_literal_arg(args)),
    "byEquality": lambda args: by_equality(_literal_arg(args)),
    "byType": lambda args: by_type(str(_literal_arg(args))),
    "absent": lambda args: absent(),
    "present": lambda args: present(),
    "applicationJson": lambda args: application_json(),
}


def _matcher_from_call(text: str) -> Optional[Matcher]:
    match = _CALL_RE.match(text)
    if match is None:
        return None
    builder = _CALL_BUILDERS.get(match.group("name"))
    if builder is None:
        raise ValueError(f"unknown matcher {match.group('name')!r}")
    return builder(match.group("args"))


def _matcher_from_mapping(spec: Mapping[str, Any]) -> Matcher:
    if "regex" in spec:
        matcher = _regex(spec["regex"])
        if spec.get("ignoreCase"):
            matcher = by_regex(matcher.pattern, ignore_case=True)
        return matcher
    if "equality" in spec:
        return by_equality(spec["equality"])
    if "type" in spec:
        return by_type(str(spec["type"]))
    if spec.get("absent"):
        return absent()
    if spec.get("present"):
        return present()
    raise ValueError(f"unrecognised matcher mapping {dict(spec)!r}")


# ---------------------------------------------------------------------------
# Contract builder
# ---------------------------------------------------------------------------

class _ContractBuilder:
    def __init__(self, data: Mapping[str, Any], *, origin: Optional[str], default_name: Optional[str]) -> None:
        self.data = data
        self.origin = origin
        self.default_name = default_name

    def fail(self, field: str, reason: str) -> ParseError:
        return ParseError(field, reason, source=self.origin)

    def build(self) -> Contract:
        name = self._identity("name", default=self.default_name)
        consumer = self._identity("consumer")
        producer = self._identity("producer")

        priority = self.data.get("priority")
        if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
            raise self.fail("priority", f"must be an integer, got {priority!r}")

        request = self._request(self._section("request"))
        response = self._response(self._section("response"))

        try:
            contract = Contract(
                name=name,
                consumer=consumer,
                producer=producer,
                description=str(self.data.get("description") or ""),
                priority=priority,
                request=request,
                response=response,
            )
        except ValidationError as exc:
            raise self.fail("contract", str(exc)) from exc
        logger.debug("Parsed contract %s (%s -> %s)", name, consumer, producer)
        return contract

    def _identity(self, key: str, default: Optional[str] = None) -> str:
        value = self.data.get(key, default)
        if value is None or not str(value).strip():
            raise self.fail(key, "is required")
        return str(value).strip()

    def _section(self, key: str) -> Mapping[str, Any]:
        section = self.data.get(key)
        if section is None:
            raise self.fail(key, "is required")
        if not isinstance(section, Mapping):
            raise self.fail(key, "must be a mapping")
        return section

    # -- request ---------------------------------------------------------

    def _request(self, section: Mapping[str, Any]) -> RequestPattern:
        method = str(section.get("method") or "").strip().upper()
        if not method:
            raise self.fail("request.method", "is required")
        if method not in SUPPORTED_METHODS:
            raise self.fail("request.method", f"unsupported method {method!r}; expected one of {', '.join(SUPPORTED_METHODS)}")

        url = section.get("url")
        if not isinstance(url, str) or not url.strip():
            raise self.fail("request.url", "must be a non-empty string")

        url_pattern = section.get("urlPattern")
        if url_pattern is not None:
            try:
                compiled = re.compile(str(url_pattern))
            except re.error as exc:
                raise self.fail("request.urlPattern", f"invalid regex: {exc}") from exc
            if compiled.fullmatch(url) is None:
                raise self.fail("request.urlPattern", f"example url {url!r} does not match {url_pattern!r}")
            url_pattern = str(url_pattern)

        headers, example_headers = self._headers(section.get("headers"), "request.headers")
        body = copy.deepcopy(section.get("body"))
        body_matchers = self._body_matchers(section.get("bodyMatchers"), body, "request.bodyMatchers")

        try:
            return RequestPattern(
                method=method,
                url=url,
                url_pattern=url_pattern,
                headers=headers,
                example_headers=example_headers,
                body=body,
                body_matchers=body_matchers,
            )
        except ValidationError as exc:
            raise self.fail("request", str(exc)) from exc

    # -- response --------------------------------------------------------

    def _response(self, section: Mapping[str, Any]) -> ResponsePattern:
        status = section.get("status", 200)
        if isinstance(status, bool) or not isinstance(status, int) or not 100 <= status <= 599:
            raise self.fail("response.status", f"must be an HTTP status code, got {status!r}")

        headers, example_headers = self._headers(section.get("headers"), "response.headers")
        body = copy.deepcopy(section.get("body"))
        body_matchers = self._body_matchers(section.get("bodyMatchers"), body, "response.bodyMatchers")

        try:
            return ResponsePattern(
                status=status,
                headers=headers,
                example_headers=example_headers,
                body=body,
                body_matchers=body_matchers,
            )
        except ValidationError as exc:
            raise self.fail("response", str(exc)) from exc

    # -- shared ----------------------------------------------------------

    def _headers(self, raw: Any, field: str) -> Tuple[Dict[str, Matcher], Dict[str, str]]:
        if raw is None:
            return {}, {}
        if not isinstance(raw, Mapping):
            raise self.fail(field, "must be a mapping of header name to value or matcher")

        matchers: Dict[str, Matcher] = {}
        examples: Dict[str, str] = {}
        for name, value in raw.items():
            header_field = f"{field}.{name}"
            name = str(name)
            if isinstance(value, Mapping) and "matcher" in value:
                matcher = parse_matcher(value["matcher"], header_field, origin=self.origin)
                example = value.get("example")
            elif is_matcher_spec(value):
                matcher = parse_matcher(value, header_field, origin=self.origin)
                example = APPLICATION_JSON if value.strip().startswith("applicationJson") else None
            elif isinstance(value, Mapping):
                matcher = parse_matcher(value, header_field, origin=self.origin)
                example = value.get("example")
            else:
                example = "" if value is None else str(value)
                matcher = EqualityMatcher(value=example)

            if isinstance(matcher, AbsenceMatcher):
                matchers[name] = matcher
                continue
            if example is None:
                raise self.fail(header_field, "non-literal header matcher needs an 'example' value")
            example = str(example)
            if not evaluate(matcher, example):
                raise self.fail(header_field, f"example {example!r} does not satisfy its matcher")
            matchers[name] = matcher
            examples[name] = example
        return matchers, examples

    def _body_matchers(self, raw: Any, body: Any, field: str) -> Dict[str, Matcher]:
        if raw is None:
            return {}
        entries: List[Tuple[Any, Any]]
        if isinstance(raw, Mapping):
            entries = list(raw.items())
        elif isinstance(raw, list):
            entries = []
            for index, item in enumerate(raw):
                if not isinstance(item, Mapping) or "path" not in item or "matcher" not in item:
                    raise self.fail(f"{field}[{index}]", "entries need 'path' and 'matcher'")
                entries.append((item["path"], item["matcher"]))
        else:
            raise self.fail(field, "must be a list of {path, matcher} entries or a mapping")

        matchers: Dict[str, Matcher] = {}
        for expression, spec in entries:
            entry_field = f"{field}[{expression}]"
            try:
                path = jsonpath.parse_path(str(expression))
            except ValueError as exc:
                raise self.fail(entry_field, str(exc)) from exc
            matcher = parse_matcher(spec, entry_field, origin=self.origin)
            example = jsonpath.resolve(body, path)
            if not isinstance(matcher, AbsenceMatcher) and example is jsonpath.MISSING:
                raise self.fail(entry_field, "path does not resolve against the example body")
            if not evaluate(matcher, example):
                raise self.fail(entry_field, "example value does not satisfy its matcher")
            canonical = jsonpath.format_path(path)
            if canonical in matchers:
                raise self.fail(entry_field, "path is declared more than once")
            matchers[canonical] = matcher
        return matchers


__all__ = ["parse", "parse_file", "parse_file_all", "load_documents", "parse_matcher", "is_matcher_spec", "is_ignored"]
