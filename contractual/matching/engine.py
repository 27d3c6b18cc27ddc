"""
Matcher engine.

Evaluates concrete values against matchers and concrete requests/responses
against contract patterns. Every function here is pure: the same inputs always
produce the same result and nothing is logged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Union, overload

from contractual.contracts import jsonpath
from contractual.contracts.jsonpath import MISSING, Path
from contractual.contracts.model import (
    AbsenceMatcher,
    EqualityMatcher,
    HttpRequest,
    HttpResponse,
    Matcher,
    PresenceMatcher,
    RegexMatcher,
    RequestPattern,
    ResponsePattern,
    TypeMatcher,
    describe_matcher,
)
from contractual.exceptions import MatchFailure


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one candidate against one pattern."""

    matched: bool
    failure: Optional[MatchFailure] = None
    specificity: int = 0

    def __bool__(self) -> bool:
        return self.matched


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(expected: Any, actual: Any) -> bool:
    """Deep equality with numeric tolerance (``50 == 50.0``); booleans are never numbers."""
    if _is_number(expected) and _is_number(actual):
        return float(expected) == float(actual)
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool) and expected is actual
    if isinstance(expected, dict) and isinstance(actual, dict):
        if set(expected) != set(actual):
            return False
        return all(values_equal(expected[key], actual[key]) for key in expected)
    if isinstance(expected, list) and isinstance(actual, list):
        if len(expected) != len(actual):
            return False
        return all(values_equal(e, a) for e, a in zip(expected, actual))
    if type(expected) is not type(actual) and not (expected is None or actual is None):
        return False
    return expected == actual


def stringify(value: Any) -> Optional[str]:
    """String form used by regex matching; ``None`` when the value has none."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return None


def json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


@lru_cache(maxsize=512)
def _compile(pattern: str, ignore_case: bool) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


# ---------------------------------------------------------------------------
# Single matcher evaluation
# ---------------------------------------------------------------------------

def evaluate(matcher: Matcher, value: Any = MISSING) -> bool:
    """Return True when ``value`` satisfies ``matcher``.

    ``value`` defaults to ``MISSING`` so absence/presence can be checked for
    values that were not found at all.
    """
    if isinstance(matcher, AbsenceMatcher):
        return value is MISSING
    if isinstance(matcher, PresenceMatcher):
        return value is not MISSING
    if value is MISSING:
        return False
    if isinstance(matcher, EqualityMatcher):
        return values_equal(matcher.value, value)
    if isinstance(matcher, RegexMatcher):
        text = stringify(value)
        if text is None:
            return False
        return _compile(matcher.pattern, matcher.ignore_case).fullmatch(text) is not None
    if isinstance(matcher, TypeMatcher):
        return json_type(value) == matcher.type
    raise TypeError(f"Unsupported matcher: {matcher!r}")


def _matcher_failure(field: str, matcher: Matcher, actual: Any) -> MatchFailure:
    if isinstance(matcher, AbsenceMatcher):
        reason = "value must be absent"
    elif actual is MISSING:
        reason = "value is missing"
    elif isinstance(matcher, RegexMatcher) and stringify(actual) is None:
        reason = f"{json_type(actual)} value cannot be matched against a regex"
    elif isinstance(matcher, TypeMatcher):
        reason = f"value is of type {json_type(actual)}"
    else:
        reason = "value does not satisfy matcher"
    return MatchFailure(
        field=field,
        matcher=matcher.kind,
        expected=describe_matcher(matcher),
        actual=None if actual is MISSING else actual,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------

def _compare_structure(
    expected: Any,
    actual: Any,
    path: Path,
    covered: Tuple[Path, ...],
) -> Optional[MatchFailure]:
    """Structural equality of ``actual`` against ``expected``, skipping covered paths."""
    if path in covered:
        return None

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return MatchFailure(jsonpath.format_path(path), "structure", "object", actual,
                                f"expected an object, got {json_type(actual)}")
        # Absent-matched keys are allowed to be missing from both sides.
        expected_keys = set(expected)
        actual_keys = set(actual)
        missing = [key for key in expected if key not in actual_keys and path + (key,) not in covered]
        if missing:
            return MatchFailure(jsonpath.format_path(path + (missing[0],)), "structure", expected[missing[0]],
                                None, "key is missing")
        unexpected = [key for key in actual if key not in expected_keys and path + (key,) not in covered]
        if unexpected:
            return MatchFailure(jsonpath.format_path(path + (unexpected[0],)), "structure", None,
                                actual[unexpected[0]], "unexpected key")
        for key in expected:
            if key not in actual:
                continue
            failure = _compare_structure(expected[key], actual[key], path + (key,), covered)
            if failure is not None:
                return failure
        return None

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return MatchFailure(jsonpath.format_path(path), "structure", "array", actual,
                                f"expected an array, got {json_type(actual)}")
        if len(expected) != len(actual):
            return MatchFailure(jsonpath.format_path(path), "structure", f"{len(expected)} items",
                                f"{len(actual)} items", "array length differs")
        for index, (e, a) in enumerate(zip(expected, actual)):
            failure = _compare_structure(e, a, path + (index,), covered)
            if failure is not None:
                return failure
        return None

    if not values_equal(expected, actual):
        return MatchFailure(jsonpath.format_path(path), "equality", expected, actual, "values differ")
    return None


def _parsed_matchers(body_matchers: Dict[str, Matcher]) -> List[Tuple[str, Path, Matcher]]:
    return [(expression, jsonpath.parse_path(expression), matcher)
            for expression, matcher in body_matchers.items()]


def match_body(expected: Any, body_matchers: Dict[str, Matcher], actual: Any) -> Optional[MatchFailure]:
    """Return the first body failure, or None when ``actual`` satisfies the pattern."""
    matchers = _parsed_matchers(body_matchers)

    for expression, path, matcher in matchers:
        value = jsonpath.resolve(actual, path)
        if not evaluate(matcher, value):
            return _matcher_failure(jsonpath.format_path(path), matcher, value)

    if expected is None and matchers:
        return None
    covered = tuple(path for _, path, _ in matchers)
    return _compare_structure(expected, actual, (), covered)


def body_specificity(expected: Any, body_matchers: Dict[str, Matcher]) -> int:
    paths = [path for _, path, _ in _parsed_matchers(body_matchers)]
    if expected is None:
        return len(paths)
    leaves = [leaf for leaf, _ in jsonpath.iter_leaves(expected)
              if not any(jsonpath.is_prefix(path, leaf) for path in paths)]
    return len(paths) + len(leaves)


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------

def match_headers(expected: Dict[str, Matcher], candidate: Union[HttpRequest, HttpResponse]) -> Optional[MatchFailure]:
    for name, matcher in expected.items():
        raw = candidate.header(name)
        value = MISSING if raw is None else raw
        if not evaluate(matcher, value):
            return _matcher_failure(f"header:{name}", matcher, value)
    return None


# ---------------------------------------------------------------------------
# Requests and responses
# ---------------------------------------------------------------------------

def request_specificity(pattern: RequestPattern) -> int:
    """Number of non-wildcard constraints a request pattern imposes."""
    score = 1  # method
    score += 1 if pattern.url_pattern else 2
    score += len(pattern.headers)
    if pattern.has_body:
        score += body_specificity(pattern.body, pattern.body_matchers)
    return score


def match_request(pattern: RequestPattern, candidate: HttpRequest) -> MatchResult:
    if pattern.method.upper() != (candidate.method or "").upper():
        return MatchResult(False, MatchFailure("method", "equality", pattern.method, candidate.method,
                                               "method differs"))

    if pattern.url_pattern:
        if _compile(pattern.url_pattern, False).fullmatch(candidate.url) is None:
            return MatchResult(False, MatchFailure("url", "regex", pattern.url_pattern, candidate.url,
                                                   "url does not match pattern"))
    elif pattern.url != candidate.url:
        return MatchResult(False, MatchFailure("url", "equality", pattern.url, candidate.url, "url differs"))

    failure = match_headers(pattern.headers, candidate)
    if failure is not None:
        return MatchResult(False, failure)

    if pattern.has_body:
        failure = match_body(pattern.body, pattern.body_matchers, candidate.body)
        if failure is not None:
            return MatchResult(False, failure)

    return MatchResult(True, None, request_specificity(pattern))


def match_response(pattern: ResponsePattern, candidate: HttpResponse) -> MatchResult:
    if pattern.status != candidate.status:
        return MatchResult(False, MatchFailure("status", "equality", pattern.status, candidate.status,
                                               "status code differs"))

    failure = match_headers(pattern.headers, candidate)
    if failure is not None:
        return MatchResult(False, failure)

    if pattern.body is not None or pattern.body_matchers:
        failure = match_body(pattern.body, pattern.body_matchers, candidate.body)
        if failure is not None:
            return MatchResult(False, failure)

    return MatchResult(True, None, 0)


@overload
def matches(pattern: RequestPattern, candidate: HttpRequest) -> bool: ...


@overload
def matches(pattern: ResponsePattern, candidate: HttpResponse) -> bool: ...


def matches(pattern, candidate) -> bool:
    if isinstance(pattern, RequestPattern):
        return match_request(pattern, candidate).matched
    if isinstance(pattern, ResponsePattern):
        return match_response(pattern, candidate).matched
    raise TypeError(f"Cannot match against {type(pattern).__name__}")
