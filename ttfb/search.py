"""Regular-expression search over fetched response bodies."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .exceptions import SearchPatternError


@dataclass
class SearchResult:
    """First match of a pattern in a response body.

    Attributes
    ----------
    match:
        Text matched by the whole pattern.
    groups:
        Captured groups in order; groups that did not participate are ``""``.
    span:
        Start and end offsets of ``match`` in the searched text.
    """

    match: str
    groups: tuple[str, ...]
    span: tuple[int, int]

    def as_list(self) -> list[str]:
        """Return the full match followed by its groups."""
        return [self.match, *self.groups]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile ``pattern`` or raise :class:`SearchPatternError`."""
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise SearchPatternError(f"Invalid search pattern {pattern!r}: {exc}") from exc


def search_body(text: str, pattern: str | re.Pattern[str]) -> SearchResult | None:
    """Return the first match of ``pattern`` in ``text`` or ``None``."""

    regex = pattern if isinstance(pattern, re.Pattern) else compile_pattern(pattern)
    found = regex.search(text)
    if found is None:
        return None
    return SearchResult(
        match=found.group(0),
        groups=found.groups(default=""),
        span=found.span(),
    )
