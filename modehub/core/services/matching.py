"""
Matchers — predicates testing an index entry name against a query.

Every matcher exposes ``test(candidate) -> bool`` and renders back to the
query text with ``str()``. Candidates are index-relative manifest paths
such as ``web/markdown.yml``.

    SubstringMatch    the query occurs anywhere in the extension-less name
    PrefixOrWordMatch the path starts with the query, or one of its words
                      equals the query, or its last word starts with it
    RegexpMatch       a regular expression searched in the path

``make_matcher`` picks one from a query and QueryOptions.
"""

from __future__ import annotations

import logging
import posixpath
import re
from abc import ABC, abstractmethod

from modehub.core.errors import ResolutionError
from modehub.core.models.options import QueryOptions

logger = logging.getLogger(__name__)

_WORDSPLIT_RE = re.compile(r"\W+", re.ASCII)

# Flag characters accepted after a /delimited/ pattern
_REGEXP_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "c": 0,   # case-sensitive
    "g": 0,   # accepted for compatibility, meaningless for a search
}


def strip_ext(name: str) -> str:
    """Drop the extension of the last path component, keeping dotfiles whole."""
    base = posixpath.basename(name)
    p = base.rfind(".")
    if p <= 0:
        return name
    return name[: len(name) - (len(base) - p)]


class Matcher(ABC):
    """A query compiled into a predicate over index entry names."""

    def __init__(self, query: str, case_sensitive: bool = False) -> None:
        self.query = query
        self.case_sensitive = case_sensitive

    @abstractmethod
    def test(self, candidate: str) -> bool:
        """Whether ``candidate`` matches the query."""

    def _fold(self, text: str) -> str:
        return text if self.case_sensitive else text.lower()

    def __str__(self) -> str:
        return self.query

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.query!r}>"


class SubstringMatch(Matcher):
    def test(self, candidate: str) -> bool:
        return self._fold(self.query) in strip_ext(self._fold(candidate))


class PrefixOrWordMatch(Matcher):
    """Favors a module's own name over incidental substrings of its namespace."""

    def test(self, candidate: str) -> bool:
        needle = self._fold(self.query)
        candidate = self._fold(candidate)
        if candidate.startswith(needle):
            return True
        words = _WORDSPLIT_RE.split(strip_ext(candidate))
        if needle in words:
            return True
        return bool(words) and words[-1].startswith(needle)


class RegexpMatch(Matcher):
    def __init__(self, pattern: re.Pattern[str], query: str | None = None) -> None:
        super().__init__(
            query if query is not None else pattern.pattern,
            case_sensitive=not pattern.flags & re.IGNORECASE,
        )
        self.pattern = pattern

    def test(self, candidate: str) -> bool:
        return self.pattern.search(candidate) is not None


def _compile(source: str, flags: int, query: str) -> re.Pattern[str]:
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ResolutionError(f"Malformed regular expression {query!r}: {e}") from e


def parse_delimited(query: str, case_sensitive: bool | None = None) -> RegexpMatch:
    """Compile a ``/pattern/flags`` query.

    Case-insensitive unless the flags contain ``c`` or the caller asks
    for case sensitivity explicitly.
    """
    p = query.rfind("/")
    if p <= 0:
        raise ResolutionError(
            'Malformed regular expression -- missing ending "/" character'
        )
    source, flag_chars = query[1:p], query[p + 1 :]

    flags = 0
    for ch in flag_chars:
        if ch not in _REGEXP_FLAGS:
            raise ResolutionError(f"Unknown regular expression flag {ch!r} in {query!r}")
        flags |= _REGEXP_FLAGS[ch]

    if case_sensitive is None:
        case_sensitive = "c" in flag_chars
    if case_sensitive:
        flags &= ~re.IGNORECASE
    else:
        flags |= re.IGNORECASE

    return RegexpMatch(_compile(source, flags, query), query=query)


def make_matcher(
    query: str | re.Pattern[str],
    options: QueryOptions | None = None,
) -> Matcher:
    """Normalize a query into one of the three matcher kinds.

    Raises:
        ResolutionError: Empty query, wrong type, or malformed pattern.
    """
    options = options or QueryOptions()

    if isinstance(query, re.Pattern):
        return RegexpMatch(query)
    if not isinstance(query, str):
        raise ResolutionError(
            f"query must be a string or a compiled pattern (not {type(query).__name__})"
        )
    if not query:
        raise ResolutionError("missing query")

    if query.startswith("/"):
        return parse_delimited(query, options.case_sensitive)
    if options.regexp:
        flags = 0 if options.case_sensitive else re.IGNORECASE
        return RegexpMatch(_compile(query, flags, query), query=query)
    if options.substr:
        return SubstringMatch(query, bool(options.case_sensitive))
    return PrefixOrWordMatch(query, bool(options.case_sensitive))
