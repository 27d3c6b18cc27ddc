"""
Contract corpus: every contract for a set of producers.

A corpus is loaded from a directory tree of ``*.yml`` / ``*.yaml`` files.
One bad contract never prevents the others from loading; its ``ParseError``
is collected in ``CorpusLoadResult.errors`` instead.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Mapping, Tuple, Union

from contractual.contracts.model import Contract
from contractual.contracts.parser import is_ignored, load_documents, parse
from contractual.exceptions import ParseError
from contractual.stubs.generator import StubDefinition, build_stubs
from contractual.verification.generator import VerificationCase, build_verification_suite

logger = logging.getLogger(__name__)

CONTRACT_SUFFIXES = (".yml", ".yaml")


class Corpus:
    """Ordered contracts grouped by producer identity."""

    def __init__(self, contracts: Iterable[Contract] = ()) -> None:
        self._by_producer: "OrderedDict[str, List[Contract]]" = OrderedDict()
        for contract in contracts:
            self.add(contract)

    def add(self, contract: Contract) -> None:
        existing = self._by_producer.setdefault(contract.producer, [])
        if any(other.name == contract.name for other in existing):
            raise ParseError("name", f"duplicate contract name {contract.name!r} for producer {contract.producer!r}")
        existing.append(contract)

    def producers(self) -> List[str]:
        return list(self._by_producer)

    def for_producer(self, producer_id: str) -> List[Contract]:
        return list(self._by_producer.get(producer_id, []))

    def __iter__(self) -> Iterator[Contract]:
        for contracts in self._by_producer.values():
            yield from contracts

    def __len__(self) -> int:
        return sum(len(contracts) for contracts in self._by_producer.values())

    def collisions(self) -> List[Tuple[str, str]]:
        """Pairs of contract names whose request patterns are identical.

        Identical patterns can never be told apart by a caller, so the stub
        server would have to report every such request as ambiguous.
        """
        pairs: List[Tuple[str, str]] = []
        for contracts in self._by_producer.values():
            for index, first in enumerate(contracts):
                for second in contracts[index + 1:]:
                    if first.request == second.request and first.priority == second.priority:
                        pairs.append((first.name, second.name))
        return pairs

    def stubs_for(self, producer_id: str) -> List[StubDefinition]:
        return build_stubs(self.for_producer(producer_id))

    def verification_suite(self, producer_id: str) -> List[VerificationCase]:
        return build_verification_suite(self.for_producer(producer_id))


@dataclass
class CorpusLoadResult:
    corpus: Corpus
    errors: List[ParseError] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _contract_files(root: Path) -> List[Path]:
    if root.is_file():
        return [root]
    return sorted(path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in CONTRACT_SUFFIXES)


def load_corpus(paths: Union[str, Path, Iterable[Union[str, Path]]]) -> CorpusLoadResult:
    """Load every contract found under ``paths`` (files or directories).

    Files are visited in sorted order so the corpus order is stable.
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]

    corpus = Corpus()
    result = CorpusLoadResult(corpus=corpus)
    for root in (Path(p) for p in paths):
        if not root.exists():
            result.errors.append(ParseError("path", "does not exist", source=str(root)))
            continue
        for file_path in _contract_files(root):
            _load_file(file_path, result)

    for first, second in corpus.collisions():
        logger.warning("Contracts %s and %s have identical request patterns", first, second)
    logger.info(
        "Loaded %d contract(s) for %d producer(s); %d error(s)",
        len(corpus), len(corpus.producers()), len(result.errors),
    )
    return result


def _load_file(file_path: Path, result: CorpusLoadResult) -> None:
    try:
        documents = load_documents(file_path)
    except ParseError as exc:
        logger.warning("Skipping contract file %s: %s", file_path, exc)
        result.errors.append(exc)
        return

    for default_name, document in documents:
        if isinstance(document, Mapping) and is_ignored(document):
            result.skipped.append(str(document.get("name") or default_name))
            continue
        try:
            contract = parse(document, origin=str(file_path), default_name=default_name)
            result.corpus.add(contract)
        except ParseError as exc:
            if exc.source is None:
                exc.source = str(file_path)
            logger.warning("Skipping contract %s: %s", default_name, exc)
            result.errors.append(exc)

