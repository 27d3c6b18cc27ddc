"""
contractual: consumer-driven contract testing.

A consumer declares the HTTP interaction it expects as a contract. The contract
is compiled into:
- a stub the consumer can test against before the producer exists
- a verification case the producer must pass

Typical use from a consumer test:

    registry = StubRegistry()
    with StubRunner(registry) as runner:
        endpoint = runner.install("com.example:person-service", build_stubs(contracts))
        ...  # call endpoint.url

and from a producer test:

    for case in build_verification_suite(contracts):
        case.run(app).raise_for_failure()
"""

from .exceptions import (
    AmbiguousMatch,
    ContractError,
    MatchFailure,
    NoMatch,
    ParseError,
    StubNotFound,
    Timeout,
)
from .contracts.model import (
    Contract,
    HttpRequest,
    HttpResponse,
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
from .matching.engine import MatchResult, evaluate, match_request, match_response, matches
from .contracts.parser import parse, parse_file, parse_file_all
from .stubs import StubDefinition, StubEndpoint, StubRegistry, StubRunner, StubServer, build_stub, build_stubs, create_stub_app
from .verification import VerificationCase, VerificationResult, build_verification, build_verification_suite
from .contracts.corpus import Corpus, CorpusLoadResult, load_corpus

__version__ = "0.1.0"

__all__ = [
    # errors
    "ContractError", "ParseError", "MatchFailure", "NoMatch", "AmbiguousMatch", "Timeout", "StubNotFound",
    # model
    "Contract", "RequestPattern", "ResponsePattern", "HttpRequest", "HttpResponse", "Matcher",
    "absent", "application_json", "by_equality", "by_regex", "by_type", "present",
    # matching
    "MatchResult", "evaluate", "match_request", "match_response", "matches",
    # parsing
    "parse", "parse_file", "parse_file_all", "Corpus", "CorpusLoadResult", "load_corpus",
    # stubs
    "StubDefinition", "StubEndpoint", "StubRegistry", "StubRunner", "StubServer",
    "build_stub", "build_stubs", "create_stub_app",
    # verification
    "VerificationCase", "VerificationResult", "build_verification", "build_verification_suite",
]
