#!/usr/bin/env python3
"""
Walk through the contract workflow and print each stage to the terminal:
load contracts, serve them as stubs, call the stubs like a consumer would,
then verify two producer implementations against the same contracts.

Usage (from repo root):
  python scripts/run_contract_demo.py
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx
from fastapi import FastAPI

from contractual.contracts.corpus import load_corpus
from contractual.stubs import StubRegistry, StubRunner
from contractual.utils.config_loader import load_config
from contractual.verification import verify_all

PRODUCER = "com.example:person-service"
CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"


def setup_logging():
    """Log to terminal at INFO so every stage is visible."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def print_stage(title: str, data):
    """Print a stage header and data to the terminal."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)
    print()


def build_producer(threshold: int) -> FastAPI:
    app = FastAPI()

    @app.post("/check")
    async def check(payload: dict):
        return {"status": "OK" if int(payload.get("age", 0)) >= threshold else "NOT_OK"}

    return app


async def main():
    setup_logging()
    cfg = load_config()

    result = load_corpus(CONTRACTS_DIR)
    contracts = result.corpus.for_producer(PRODUCER)
    print_stage("CONTRACTS", [c.name for c in contracts])

    with StubRunner(StubRegistry(), cfg.stub_server) as runner:
        endpoint = runner.install(PRODUCER, result.corpus.stubs_for(PRODUCER))
        print_stage("STUB SERVER", endpoint.url)

        async with httpx.AsyncClient(base_url=endpoint.url) as client:
            for age in (50, 10, 5):
                response = await client.post("/check", json={"age": age})
                print_stage(f"CONSUMER CALL age={age} -> {response.status_code}", response.json())

    cases = result.corpus.verification_suite(PRODUCER)
    for label, producer in (("threshold 20", build_producer(20)), ("always NOT_OK", build_producer(1000))):
        results = await verify_all(cases, producer, config=cfg.verification)
        print_stage(f"VERIFY PRODUCER ({label})", [r.describe() for r in results])


if __name__ == "__main__":
    asyncio.run(main())
