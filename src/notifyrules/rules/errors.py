"""
Rule Engine Exceptions.

Raised by the pure parsing functions in ``serialization`` and caught at the
``RuleStore`` boundary, which turns them into a logged load failure.
"""

from __future__ import annotations


class RulesError(Exception):
    """Base exception for rule engine errors."""


class RulesFormatError(RulesError):
    """
    Malformed rule document or record.

    Attributes:
        path: Location of the offending value (e.g. "rules[2].conditions[0].type")
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class UnknownKindError(RulesFormatError, KeyError):
    """
    A condition type, operator or action type name is not recognized.

    Also a KeyError so callers doing name lookups can catch it either way.
    """

    def __init__(self, kind: str, name: str, path: str | None = None) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: {name!r}", path)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return Exception.__str__(self)


class IncompatibleVersionError(RulesError):
    """Rule document version is not a 1.x version."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Incompatible rule document version: {version!r} (expected 1.x)")
