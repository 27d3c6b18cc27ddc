"""Matcher engine: evaluates values, requests and responses against contract patterns."""

from .engine import (
    MatchResult,
    evaluate,
    match_body,
    match_request,
    match_response,
    matches,
    request_specificity,
    values_equal,
)

__all__ = [
    "MatchResult", "evaluate", "match_body", "match_request", "match_response",
    "matches", "request_specificity", "values_equal",
]
