#!/usr/bin/env python3
"""
Serve the stubs of one producer until interrupted.

Loads every contract under the contracts directory, installs the given
producer's stubs and prints the endpoint so a consumer can be pointed at it.

Usage (from repo root):
  python scripts/run_stub_server.py --producer com.example:person-service
  python scripts/run_stub_server.py --producer com.example:person-service --port 8090
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from contractual.contracts.corpus import load_corpus
from contractual.stubs import StubRegistry, StubRunner
from contractual.utils.config_loader import load_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run contract stubs for a producer")
    parser.add_argument("--producer", required=True, help="Producer id, e.g. com.example:person-service")
    parser.add_argument("--contracts", type=Path, default=None, help="Contracts directory (default from config)")
    parser.add_argument("--config", type=Path, default=None, help="Path to contractual_config.yml")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    cfg = load_config(args.config)
    stub_cfg = cfg.stub_server.model_copy(update={
        key: value for key, value in {"host": args.host, "port": args.port}.items() if value is not None
    })

    result = load_corpus(args.contracts or Path(cfg.contracts_dir))
    for error in result.errors:
        print(f"  ! {error}")
    stubs = result.corpus.stubs_for(args.producer)
    if not stubs:
        print(f"No contracts found for producer {args.producer}. Known: {', '.join(result.corpus.producers()) or 'none'}")
        return 1

    with StubRunner(StubRegistry(), stub_cfg) as runner:
        endpoint = runner.install(args.producer, stubs)
        print(f"Serving {len(stubs)} stub(s) for {args.producer} at {endpoint.url} (Ctrl+C to stop)")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nStopping.")
        misses = runner.stub_server(args.producer).unmatched_count
        if misses:
            print(f"{misses} request(s) matched no contract")
    return 0


if __name__ == "__main__":
    sys.exit(main())
