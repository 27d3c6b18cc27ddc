"""
In-memory stub registry.

Installed stub sets are stored as immutable tuples keyed by producer identity.
``install`` swaps the whole set for a producer under a lock held only for the
reference swap, so concurrent ``resolve`` calls always see either the old set
or the new one, never a mix.

Create one registry per test session and pass it explicitly; there is no
module-level registry.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, Iterable, List, Tuple

from contractual.exceptions import StubNotFound
from contractual.stubs.generator import StubDefinition

logger = logging.getLogger(__name__)

# group:artifact or group:artifact:version
_PRODUCER_ID_RE = re.compile(r"^[\w.\-]+:[\w.\-]+(:[\w.\-+]+)?$")


def _normalise(producer_id: object) -> str:
    return producer_id.strip() if isinstance(producer_id, str) else ""


def validate_producer_id(producer_id: str) -> str:
    value = _normalise(producer_id)
    if not _PRODUCER_ID_RE.match(value):
        raise ValueError(f"Invalid producer id {producer_id!r}; expected 'group:artifact[:version]'")
    return value


class StubRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stubs: Dict[str, Tuple[StubDefinition, ...]] = {}

    def install(self, producer_id: str, definitions: Iterable[StubDefinition]) -> Tuple[StubDefinition, ...]:
        """Install (or replace) the full stub set for ``producer_id``."""
        key = validate_producer_id(producer_id)
        snapshot = tuple(definitions)
        with self._lock:
            updated = dict(self._stubs)
            replaced = key in updated
            updated[key] = snapshot
            self._stubs = updated
        logger.info(
            "%s %d stub(s) for %s", "Reinstalled" if replaced else "Installed", len(snapshot), key,
        )
        return snapshot

    def resolve(self, producer_id: str) -> Tuple[StubDefinition, ...]:
        stubs = self._stubs
        try:
            return stubs[_normalise(producer_id)]
        except KeyError:
            raise StubNotFound(producer_id, available=list(stubs)) from None

    def uninstall(self, producer_id: str) -> bool:
        key = _normalise(producer_id)
        with self._lock:
            if key not in self._stubs:
                return False
            updated = dict(self._stubs)
            del updated[key]
            self._stubs = updated
        logger.info("Uninstalled stubs for %s", key)
        return True

    def producers(self) -> List[str]:
        return sorted(self._stubs)

    def clear(self) -> None:
        with self._lock:
            self._stubs = {}

    def __contains__(self, producer_id: object) -> bool:
        return _normalise(producer_id) in self._stubs
