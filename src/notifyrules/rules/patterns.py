"""
Placeholder Pattern Matching.

A pattern is literal text in which placeholder tokens stand for value
shapes that vary between otherwise identical notifications:

| Token     | Matches                              |
|-----------|--------------------------------------|
| [TIME]    | 9:30, 21:05:10, 7:15 PM              |
| [DATE]    | 12/31/2025, 1-2-25                   |
| [NUMBER]  | any standalone integer               |
| [PERCENT] | 42%                                  |
| [SIZE]    | 1.5 GB, 300MB                        |
| [URL]     | http(s) links                        |
| [EMAIL]   | email addresses                      |

Tokens are recognized case-insensitively so lower-cased patterns still work.
Matching is a case-insensitive search anywhere in the text.
"""

from __future__ import annotations

import re
from typing import Protocol

from ..core.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_REGEXES: dict[str, str] = {
    "TIME": r"\b\d{1,2}:\d{2}(:\d{2})?\s*(AM|PM|am|pm)?\b",
    "DATE": r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b",
    "NUMBER": r"\b\d+\b",
    "PERCENT": r"\b\d+%",
    "SIZE": r"\b\d+(\.\d+)?\s*(MB|GB|KB|TB)\b",
    "URL": r"\bhttps?://[^\s]+\b",
    "EMAIL": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
}

_TOKEN_RE = re.compile(r"\[(" + "|".join(PLACEHOLDER_REGEXES) + r")\]", re.IGNORECASE)


class PatternMatcher(Protocol):
    """Capability used by NOTIFICATION_CONTENT / MATCHES_PATTERN conditions."""

    def matches(self, text: str, pattern: str) -> bool: ...


def pattern_to_regex(pattern: str) -> str:
    """
    Translate a placeholder pattern into a regular expression.

    Literal segments are escaped; tokens are replaced by their regex.
    """
    parts: list[str] = []
    pos = 0
    for match in _TOKEN_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos : match.start()]))
        parts.append(PLACEHOLDER_REGEXES[match.group(1).upper()])
        pos = match.end()
    parts.append(re.escape(pattern[pos:]))
    return "".join(parts)


class PlaceholderPatternMatcher:
    """
    Default pattern matcher.

    Compiled patterns are cached per instance. A pattern that fails to
    compile falls back to a case-insensitive substring test.
    """

    def __init__(self) -> None:
        self._cache: dict[str, re.Pattern[str] | None] = {}

    def _compile(self, pattern: str) -> re.Pattern[str] | None:
        if pattern in self._cache:
            return self._cache[pattern]
        try:
            compiled: re.Pattern[str] | None = re.compile(
                pattern_to_regex(pattern), re.IGNORECASE
            )
        except re.error as e:
            logger.debug(f"Pattern {pattern!r} did not compile, using substring test: {e}")
            compiled = None
        self._cache[pattern] = compiled
        return compiled

    def matches(self, text: str, pattern: str) -> bool:
        """Return True if pattern occurs anywhere in text."""
        compiled = self._compile(pattern)
        if compiled is None:
            return pattern.lower() in text.lower()
        return compiled.search(text) is not None
