"""
Minimal JSON-path support for body matchers.

Supported syntax: ``$``, ``$.field``, ``$.a.b``, ``$['key with spaces']``,
``$["key"]``, ``$.items[0]`` and any combination of those. Anything else
(filters, wildcards, recursive descent, negative indexes) raises ``ValueError``.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, List, Tuple, Union

PathToken = Union[str, int]
Path = Tuple[PathToken, ...]

_TOKEN_RE = re.compile(
    r"""
    \.(?P<name>[A-Za-z_$@][\w$@\-]*)          # .name
    | \[\s*(?P<index>\d+)\s*\]               # [0]
    | \[\s*'(?P<single>(?:[^'\\]|\\.)*)'\s*\]  # ['name']
    | \[\s*"(?P<double>(?:[^"\\]|\\.)*)"\s*\]  # ["name"]
    """,
    re.VERBOSE,
)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][\w\-]*$")


class _Missing:
    """Sentinel returned when a path does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<missing>"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def parse_path(expression: str) -> Path:
    """Parse a JSON-path expression into a tuple of keys and indexes."""
    text = (expression or "").strip()
    if not text.startswith("$"):
        # Allow the bare dotted form used by some contract authors ("a.b").
        text = "$." + text if text else text
    if not text:
        raise ValueError("JSON path must not be empty")

    tokens: List[PathToken] = []
    position = 1
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise ValueError(f"Unsupported JSON path syntax at position {position}: {expression!r}")
        if match.group("name") is not None:
            tokens.append(match.group("name"))
        elif match.group("index") is not None:
            tokens.append(int(match.group("index")))
        elif match.group("single") is not None:
            tokens.append(_unescape(match.group("single")))
        else:
            tokens.append(_unescape(match.group("double")))
        position = match.end()
    return tuple(tokens)


def format_path(path: Path) -> str:
    """Render a token tuple back into canonical ``$.a[0]['b c']`` form."""
    parts = ["$"]
    for token in path:
        if isinstance(token, int):
            parts.append(f"[{token}]")
        elif _IDENTIFIER_RE.match(token):
            parts.append(f".{token}")
        else:
            escaped = token.replace("\\", "\\\\").replace("'", "\\'")
            parts.append(f"['{escaped}']")
    return "".join(parts)


def resolve(document: Any, path: Path) -> Any:
    """Return the value at ``path`` or ``MISSING`` when any step does not exist."""
    current = document
    for token in path:
        if isinstance(token, int):
            if not isinstance(current, list):
                return MISSING
            try:
                current = current[token]
            except IndexError:
                return MISSING
        else:
            if not isinstance(current, dict) or token not in current:
                return MISSING
            current = current[token]
    return current


def iter_leaves(document: Any, prefix: Path = ()) -> Iterator[Tuple[Path, Any]]:
    """Yield ``(path, value)`` for every scalar leaf; empty containers count as leaves."""
    if isinstance(document, dict) and document:
        for key, value in document.items():
            yield from iter_leaves(value, prefix + (key,))
    elif isinstance(document, list) and document:
        for index, value in enumerate(document):
            yield from iter_leaves(value, prefix + (index,))
    else:
        yield prefix, document


def is_prefix(prefix: Path, path: Path) -> bool:
    return len(prefix) <= len(path) and path[: len(prefix)] == prefix


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)
