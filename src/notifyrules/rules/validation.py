"""
Rule Validation.

Flags rules that will silently misbehave at evaluation time, where a
condition error just means "no match":
- Errors: values that can never parse (times, numbers, device states)
- Warnings: operators a condition kind ignores or never matches with,
  unknown day names, unsupported LOCATION conditions, priorities outside
  the 1-20 convention, rules without actions, duplicate ids
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .conditions import DAY_NAMES, DEVICE_STATE_PARAMETERS, parse_int, split_dropping_trailing
from .models import ActionType, ComparisonOperator, Condition, ConditionType, Rule

_STRICT_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")

PRIORITY_MIN = 1
PRIORITY_MAX = 20

_OP = ComparisonOperator
_TEXT_OPERATORS = frozenset({_OP.EQUALS, _OP.NOT_EQUALS, _OP.CONTAINS, _OP.NOT_CONTAINS})
_COUNT_OPERATORS = frozenset({_OP.EQUALS, _OP.NOT_EQUALS, _OP.GREATER_THAN, _OP.LESS_THAN})
_TIME_OPERATORS = frozenset({_OP.EQUALS, _OP.GREATER_THAN, _OP.LESS_THAN})
_ELAPSED_OPERATORS = frozenset({_OP.GREATER_THAN, _OP.LESS_THAN})


@dataclass
class ValidationError:
    """Structured validation error with context."""

    field: str  # Field path (e.g., "conditions[0].value")
    code: str  # Error code (e.g., "INVALID_TIME")
    message: str  # Human-readable message
    suggestion: str | None = None  # How to fix it

    def __str__(self) -> str:
        result = f"{self.field}: {self.message}"
        if self.suggestion:
            result += f" ({self.suggestion})"
        return result

    def to_dict(self) -> dict[str, str | None]:
        return {
            "field": self.field,
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    """Complete validation result."""

    valid: bool
    errors: list[ValidationError]
    warnings: list[ValidationError]

    @property
    def error_messages(self) -> list[str]:
        """Get error messages as strings."""
        return [str(e) for e in self.errors]

    @property
    def warning_messages(self) -> list[str]:
        """Get warning messages as strings."""
        return [str(w) for w in self.warnings]

    @property
    def codes(self) -> set[str]:
        """All error and warning codes."""
        return {e.code for e in self.errors} | {w.code for w in self.warnings}


def _is_valid_time(value: str) -> bool:
    match = _STRICT_TIME_RE.fullmatch(value)
    if not match:
        return False
    return int(match.group(1)) < 24 and int(match.group(2)) < 60


def _operator_warning(
    field: str,
    condition: Condition,
    code: str,
    detail: str,
    allowed: frozenset[ComparisonOperator] | None = None,
) -> ValidationError:
    suggestion = None
    if allowed:
        names = ", ".join(sorted(op.name for op in allowed))
        suggestion = f"Use one of: {names}"
    return ValidationError(
        field=f"{field}.operator",
        code=code,
        message=f"{condition.type.name} {detail} {condition.operator.name}",
        suggestion=suggestion,
    )


# =============================================================================
# Condition Checks
# =============================================================================


def _validate_time(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    value = condition.value
    if "-" in value:
        parts = split_dropping_trailing(value, "-")
        if len(parts) != 2:
            errors.append(
                ValidationError(
                    field=f"{field}.value",
                    code="INVALID_TIME_RANGE",
                    message=f"Time range {value!r} must have exactly two times",
                    suggestion="Use HH:MM-HH:MM, e.g. 22:00-06:00",
                )
            )
            return
        for part in parts:
            if not _is_valid_time(part.strip()):
                errors.append(
                    ValidationError(
                        field=f"{field}.value",
                        code="INVALID_TIME",
                        message=f"{part.strip()!r} is not a valid HH:MM time (parses as 00:00)",
                        suggestion="Use 24-hour HH:MM",
                    )
                )
        if condition.operator != _OP.IN_RANGE:
            warnings.append(
                _operator_warning(field, condition, "OPERATOR_IGNORED", "range ignores operator")
            )
        return

    if not _is_valid_time(value):
        errors.append(
            ValidationError(
                field=f"{field}.value",
                code="INVALID_TIME",
                message=f"{value!r} is not a valid HH:MM time (parses as 00:00)",
                suggestion="Use 24-hour HH:MM",
            )
        )
    if condition.operator not in _TIME_OPERATORS:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_NEVER_MATCHES", "never matches with", _TIME_OPERATORS
            )
        )


def _validate_day(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    value = condition.value.lower()
    is_list = "," in value
    names = [d.strip() for d in value.split(",")] if is_list else [value]

    for name in names:
        if name in ("weekday", "weekend") and not is_list:
            continue
        if name and name not in DAY_NAMES:
            warnings.append(
                ValidationError(
                    field=f"{field}.value",
                    code="UNKNOWN_DAY",
                    message=f"Unknown day name {name!r} never matches",
                    suggestion="Use monday..sunday, mon..sun, weekday or weekend",
                )
            )

    equality = frozenset({_OP.EQUALS, _OP.NOT_EQUALS})
    if condition.operator in equality:
        return
    if is_list:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_NEVER_MATCHES", "day list never matches with", equality
            )
        )
    else:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_INVERTS", "treats as NOT_EQUALS:", equality
            )
        )


def _validate_app(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if condition.operator not in _TEXT_OPERATORS:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_NEVER_MATCHES", "never matches with", _TEXT_OPERATORS
            )
        )
    elif "," in condition.value:
        warnings.append(
            ValidationError(
                field=f"{field}.value",
                code="LITERAL_LIST",
                message="Comma-separated packages are compared as one literal string",
                suggestion="Use one rule (or condition) per package",
            )
        )


def _validate_content(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    allowed = _TEXT_OPERATORS | {_OP.MATCHES_PATTERN}
    if condition.operator not in allowed:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_NEVER_MATCHES", "never matches with", allowed
            )
        )


def _validate_number(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
    allowed: frozenset[ComparisonOperator],
) -> None:
    if parse_int(condition.value) is None:
        errors.append(
            ValidationError(
                field=f"{field}.value",
                code="INVALID_NUMBER",
                message=f"{condition.value!r} is not an integer",
                suggestion="Use a whole number",
            )
        )
    if condition.operator not in allowed:
        warnings.append(
            _operator_warning(
                field, condition, "OPERATOR_NEVER_MATCHES", "never matches with", allowed
            )
        )


def _validate_device_state(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if condition.parameter not in DEVICE_STATE_PARAMETERS:
        errors.append(
            ValidationError(
                field=f"{field}.parameter",
                code="UNKNOWN_DEVICE_STATE",
                message=f"Unknown device state {condition.parameter!r}",
                suggestion=f"Use one of: {', '.join(DEVICE_STATE_PARAMETERS)}",
            )
        )
    if condition.operator != _OP.EQUALS:
        warnings.append(
            _operator_warning(field, condition, "OPERATOR_IGNORED", "ignores operator")
        )


def _validate_condition(
    field: str,
    condition: Condition,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    kind = condition.type
    if kind == ConditionType.TIME_OF_DAY:
        _validate_time(field, condition, errors, warnings)
    elif kind == ConditionType.DAY_OF_WEEK:
        _validate_day(field, condition, errors, warnings)
    elif kind == ConditionType.APP_PACKAGE:
        _validate_app(field, condition, errors, warnings)
    elif kind == ConditionType.NOTIFICATION_CONTENT:
        _validate_content(field, condition, errors, warnings)
    elif kind == ConditionType.NOTIFICATION_COUNT:
        _validate_number(field, condition, errors, warnings, _COUNT_OPERATORS)
    elif kind == ConditionType.LAST_NOTIFICATION_TIME:
        _validate_number(field, condition, errors, warnings, _ELAPSED_OPERATORS)
    elif kind == ConditionType.DEVICE_STATE:
        _validate_device_state(field, condition, errors, warnings)
    elif kind == ConditionType.LOCATION:
        warnings.append(
            ValidationError(
                field=f"{field}.type",
                code="UNSUPPORTED_CONDITION",
                message="LOCATION conditions are not evaluated and never match",
                suggestion="Remove the condition or the rule will never fire",
            )
        )


# =============================================================================
# Public API
# =============================================================================


def _collect_rule(
    rule: Rule,
    prefix: str,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if not rule.name.strip():
        warnings.append(
            ValidationError(
                field=f"{prefix}name",
                code="NO_NAME",
                message="Rule has no name",
                suggestion="Names appear in applied_rules output",
            )
        )

    if not PRIORITY_MIN <= rule.priority <= PRIORITY_MAX:
        warnings.append(
            ValidationError(
                field=f"{prefix}priority",
                code="PRIORITY_RANGE",
                message=f"Priority {rule.priority} is outside {PRIORITY_MIN}-{PRIORITY_MAX}",
                suggestion="Higher priorities apply first; keep within the usual range",
            )
        )

    for i, condition in enumerate(rule.conditions):
        _validate_condition(f"{prefix}conditions[{i}]", condition, errors, warnings)

    if not rule.actions:
        warnings.append(
            ValidationError(
                field=f"{prefix}actions",
                code="NO_ACTIONS",
                message="Rule has no actions and only shows up in applied_rules",
            )
        )

    for i, action in enumerate(rule.actions):
        if action.type == ActionType.SET_DELAY and parse_int(action.value) is None:
            errors.append(
                ValidationError(
                    field=f"{prefix}actions[{i}].value",
                    code="INVALID_NUMBER",
                    message=f"Delay {action.value!r} is not an integer number of seconds",
                    suggestion="Use a whole number of seconds",
                )
            )


def validate_rule(rule: Rule) -> ValidationResult:
    """
    Validate a single rule.

    Args:
        rule: Rule to check

    Returns:
        ValidationResult with errors and warnings
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []
    _collect_rule(rule, "", errors, warnings)
    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_rules(rules: list[Rule]) -> ValidationResult:
    """
    Validate a rule list.

    Field paths are prefixed with the rule id, e.g. "rule_1700000000000.priority".
    Duplicate ids are reported as warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            warnings.append(
                ValidationError(
                    field=f"{rule.id}.id",
                    code="DUPLICATE_ID",
                    message=f"Rule id {rule.id!r} is used more than once",
                    suggestion="Removing by id removes every rule with that id",
                )
            )
        seen.add(rule.id)
        _collect_rule(rule, f"{rule.id}.", errors, warnings)

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)
