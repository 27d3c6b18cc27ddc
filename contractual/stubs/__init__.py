"""
Stubs.

Compiles contracts into stub definitions, keeps them in a registry and serves
them over HTTP so consumer tests can run before the real producer exists.
"""

from .generator import StubDefinition, build_stub, build_stubs
from .registry import StubRegistry, validate_producer_id
from .server import StubServer, create_stub_app, select_stub
from .runner import StubEndpoint, StubRunner

__all__ = [
    "StubDefinition", "build_stub", "build_stubs",
    "StubRegistry", "validate_producer_id",
    "StubServer", "create_stub_app", "select_stub",
    "StubEndpoint", "StubRunner",
]
