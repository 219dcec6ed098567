"""Paths that bypass authentication.

Patterns use Starlette route syntax (``/items/{id:int}``, ``/files/{name:path}``),
with one addition: a trailing ``*`` matches any remainder of the path.
"""

import threading
from collections.abc import Iterator
from functools import lru_cache

from starlette.routing import Match, Route

from .log import sublogger

WILDCARD = "*"
WILDCARD_PARAM = "{_skipped:path}"

_logger = sublogger("skip")


def _empty_endpoint(request):
    """Skip routes are only matched, never called."""


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Route | None:
    """Route for a skip pattern, None if Starlette rejects the pattern."""
    path = pattern
    if path.endswith(WILDCARD):
        path = path[: -len(WILDCARD)] + WILDCARD_PARAM
    try:
        return Route(path, _empty_endpoint)
    except (AssertionError, ValueError) as exc:
        _logger.warning("Unusable skip pattern {!r}: {}", pattern, exc)
        return None


def path_matches(pattern: str, path: str) -> bool:
    """Does the path match the pattern (for any method)."""
    if not isinstance(pattern, str):
        _logger.warning("Unusable skip pattern {!r}: not a string", pattern)
        return False
    route = compile_pattern(pattern)
    if route is None:
        return False
    scope = {"type": "http", "path": path, "root_path": "", "method": "GET"}
    match, _ = route.matches(scope)
    return match != Match.NONE


class SkipList:
    """Ordered list of path patterns, duplicates allowed.

    The patterns are kept in a tuple that is replaced on every change, so
    `matches` always sees a consistent snapshot while another thread
    changes the list.
    """

    def __init__(self, patterns: list[str] | tuple[str, ...] = ()) -> None:
        """Skip list, starting with the given patterns."""
        self._lock = threading.Lock()
        self._patterns: tuple[str, ...] = ()
        self.set(patterns)

    def set(self, patterns: list[str] | tuple[str, ...]) -> None:
        """Replace the list. Anything but a list or tuple of strings is ignored."""
        if not isinstance(patterns, (list, tuple)):
            _logger.warning(
                "Skip list not replaced: expecting a list, got {}",
                type(patterns).__name__,
            )
            return
        if not all(isinstance(p, str) for p in patterns):
            _logger.warning("Skip list not replaced: patterns must be strings")
            return
        with self._lock:
            self._patterns = tuple(patterns)

    def erase(self) -> None:
        """Remove all patterns."""
        with self._lock:
            self._patterns = ()

    def add(self, pattern: str) -> None:
        """Append a pattern."""
        with self._lock:
            self._patterns = (*self._patterns, pattern)

    def remove(self, pattern: str) -> None:
        """Remove every occurrence of the pattern."""
        with self._lock:
            self._patterns = tuple(p for p in self._patterns if p != pattern)

    def get(self) -> list[str]:
        """Copy of the current patterns."""
        return list(self._patterns)

    def matches(self, path: str) -> bool:
        """Is the path covered by one of the patterns."""
        return any(path_matches(pattern, path) for pattern in self._patterns)

    def __iter__(self) -> Iterator[str]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __repr__(self) -> str:
        return f"SkipList({list(self._patterns)!r})"
