"""
Contract model, JSON-path helpers, parser and corpus loading.

Only the model is re-exported here: the parser depends on the matcher engine,
which in turn depends on this package's model and JSON-path modules.
Import ``contractual.contracts.parser`` / ``contractual.contracts.corpus`` directly,
or use the top-level ``contractual`` package.
"""

from .model import (
    APPLICATION_JSON,
    SUPPORTED_METHODS,
    AbsenceMatcher,
    Contract,
    EqualityMatcher,
    HttpRequest,
    HttpResponse,
    Matcher,
    PresenceMatcher,
    RegexMatcher,
    RequestPattern,
    ResponsePattern,
    TypeMatcher,
    absent,
    application_json,
    by_equality,
    by_regex,
    by_type,
    present,
)

__all__ = [
    "APPLICATION_JSON", "SUPPORTED_METHODS",
    "AbsenceMatcher", "EqualityMatcher", "PresenceMatcher", "RegexMatcher", "TypeMatcher", "Matcher",
    "Contract", "RequestPattern", "ResponsePattern", "HttpRequest", "HttpResponse",
    "absent", "application_json", "by_equality", "by_regex", "by_type", "present",
]
