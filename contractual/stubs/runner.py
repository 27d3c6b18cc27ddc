"""
Stub runner: the "install stub" boundary for consumer test harnesses.

``StubRunner.install`` puts a producer's stub definitions into the registry and
returns a live endpoint. The first install for a producer starts a uvicorn
server in a daemon thread; reinstalling only swaps the registry entry, and the
running server picks up the new set on its next request.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import uvicorn

from contractual.stubs.generator import StubDefinition
from contractual.stubs.registry import StubRegistry, validate_producer_id
from contractual.stubs.server import StubServer, create_stub_app
from contractual.utils.config_loader import StubServerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StubEndpoint:
    producer_id: str
    host: str
    port: int

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class _RunningStub:
    def __init__(self, endpoint: StubEndpoint, server: uvicorn.Server, thread: threading.Thread,
                 stub_server: StubServer) -> None:
        self.endpoint = endpoint
        self.server = server
        self.thread = thread
        self.stub_server = stub_server


class StubRunner:
    """Runs one HTTP stub server per installed producer."""

    def __init__(self, registry: Optional[StubRegistry] = None, config: Optional[StubServerConfig] = None) -> None:
        self.registry = registry or StubRegistry()
        self.config = config or StubServerConfig()
        self._running: Dict[str, _RunningStub] = {}
        self._lock = threading.Lock()

    def install(self, producer_id: str, definitions: Iterable[StubDefinition]) -> StubEndpoint:
        key = validate_producer_id(producer_id)
        snapshot = tuple(definitions)
        with self._lock:
            running = self._running.get(key)
            if running is None:
                running = self._start(key)
                self._running[key] = running
        self.registry.install(key, snapshot)
        return running.endpoint

    def endpoint(self, producer_id: str) -> Optional[StubEndpoint]:
        running = self._running.get(producer_id.strip())
        return running.endpoint if running else None

    def stub_server(self, producer_id: str) -> Optional[StubServer]:
        running = self._running.get(producer_id.strip())
        return running.stub_server if running else None

    def raise_for_unmatched(self) -> None:
        """Raise NoMatch if any running stub server received an unmatched request."""
        for running in list(self._running.values()):
            running.stub_server.raise_for_unmatched()

    def stop(self, producer_id: str) -> None:
        producer_id = producer_id.strip()
        with self._lock:
            running = self._running.pop(producer_id, None)
        if running is None:
            return
        running.server.should_exit = True
        running.thread.join(timeout=self.config.startup_timeout_seconds)
        self.registry.uninstall(producer_id)
        logger.info("Stopped stub server for %s at %s", producer_id, running.endpoint)

    def stop_all(self) -> None:
        for producer_id in self.running_producers():
            self.stop(producer_id)

    def running_producers(self) -> List[str]:
        return list(self._running)

    def __enter__(self) -> "StubRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop_all()

    def _start(self, producer_id: str) -> _RunningStub:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
        except OSError:
            sock.close()
            logger.error("Cannot bind stub server for %s to %s:%s", producer_id, self.config.host, self.config.port)
            raise
        host, port = sock.getsockname()[:2]

        stub_server = StubServer(self.registry, producer_id)
        app = create_stub_app(
            self.registry,
            producer_id,
            no_match_status=self.config.no_match_status,
            ambiguous_status=self.config.ambiguous_status,
            server=stub_server,
        )
        server = uvicorn.Server(uvicorn.Config(app, log_level=self.config.log_level, lifespan="off"))
        thread = threading.Thread(
            target=server.run,
            kwargs={"sockets": [sock]},
            name=f"stub-{producer_id}",
            daemon=True,
        )
        thread.start()

        deadline = time.monotonic() + self.config.startup_timeout_seconds
        while not server.started:
            if not thread.is_alive() or time.monotonic() > deadline:
                server.should_exit = True
                sock.close()
                raise RuntimeError(f"Stub server for {producer_id} failed to start on {host}:{port}")
            time.sleep(0.01)

        endpoint = StubEndpoint(producer_id=producer_id, host=host, port=port)
        logger.info("Stub server for %s listening on %s", producer_id, endpoint)
        return _RunningStub(endpoint, server, thread, stub_server)
