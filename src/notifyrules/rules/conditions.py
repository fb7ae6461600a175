"""
Condition Evaluation.

Maps a Condition plus a NotificationContext (and injected device state)
to a boolean. Evaluation never raises: any error is logged and the
condition is treated as not matching.

Per-type semantics:
| Type                   | Operators                          | Value grammar              |
|------------------------|------------------------------------|----------------------------|
| TIME_OF_DAY            | EQUALS, GREATER_THAN, LESS_THAN    | HH:MM, or HH:MM-HH:MM range |
| DAY_OF_WEEK            | EQUALS, other = inverted           | day list, weekday, weekend |
| APP_PACKAGE            | EQUALS/NOT_EQUALS/(NOT_)CONTAINS   | package name, case-sensitive |
| NOTIFICATION_CONTENT   | + MATCHES_PATTERN                  | text, case-insensitive     |
| NOTIFICATION_COUNT     | EQUALS/NOT_EQUALS/GT/LT            | integer                    |
| LAST_NOTIFICATION_TIME | GREATER_THAN, LESS_THAN            | integer seconds            |
| DEVICE_STATE           | ignored                            | on/true, charging/true     |
| LOCATION               | -                                  | never matches              |
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ..core.logging import get_logger
from .models import ComparisonOperator, Condition, ConditionType, NotificationContext
from .patterns import PatternMatcher, PlaceholderPatternMatcher

logger = get_logger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1

# Monday=1 .. Sunday=7
DAY_NAMES: dict[str, int] = {
    "monday": 1,
    "mon": 1,
    "tuesday": 2,
    "tue": 2,
    "wednesday": 3,
    "wed": 3,
    "thursday": 4,
    "thu": 4,
    "friday": 5,
    "fri": 5,
    "saturday": 6,
    "sat": 6,
    "sunday": 7,
    "sun": 7,
}

SCREEN_STATE = "screen_state"
CHARGING_STATE = "charging_state"
DEVICE_STATE_PARAMETERS = (SCREEN_STATE, CHARGING_STATE)


# =============================================================================
# Collaborators
# =============================================================================


class DeviceStateProvider(Protocol):
    """Synchronous snapshot reads of platform device state."""

    def is_screen_interactive(self) -> bool: ...

    def is_charging(self) -> bool: ...


@dataclass
class StaticDeviceState:
    """Device state with fixed values, for tests and the CLI."""

    screen_on: bool = False
    charging: bool = False

    def is_screen_interactive(self) -> bool:
        return self.screen_on

    def is_charging(self) -> bool:
        return self.charging


# =============================================================================
# Parsing Helpers
# =============================================================================


def parse_int(value: str) -> int | None:
    """Strict 32-bit integer parse (optional sign, ASCII digits, no whitespace)."""
    if value is None or not _INT_RE.fullmatch(value):
        return None
    number = int(value)
    if not _INT_MIN <= number <= _INT_MAX:
        return None
    return number


def split_dropping_trailing(value: str, sep: str) -> list[str]:
    """Split on sep and discard trailing empty pieces ("a-b-" -> ["a", "b"])."""
    parts = value.split(sep)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def parse_time_to_minutes(time_str: str) -> int:
    """
    Parse "HH:MM" into minutes since midnight.

    Malformed input parses as 0.
    """
    parts = split_dropping_trailing(time_str, ":")
    if len(parts) == 2:
        hours = parse_int(parts[0])
        minutes = parse_int(parts[1])
        if hours is not None and minutes is not None:
            return hours * 60 + minutes
    logger.debug(f"Invalid time format: {time_str!r}")
    return 0


def parse_time_range(value: str) -> tuple[int, int] | None:
    """Parse "HH:MM-HH:MM" into (start, end) minutes, or None if not two parts."""
    parts = split_dropping_trailing(value, "-")
    if len(parts) != 2:
        return None
    return parse_time_to_minutes(parts[0].strip()), parse_time_to_minutes(parts[1].strip())


def in_time_range(current: int, start: int, end: int) -> bool:
    """Inclusive range check; start > end wraps past midnight."""
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def matches_day(day_name: str, day_of_week: int) -> bool:
    """True if day_name (full or 3-letter, any case) is day_of_week (Mon=1)."""
    return DAY_NAMES.get(day_name.lower()) == day_of_week


# =============================================================================
# Evaluator
# =============================================================================


class ConditionEvaluator:
    """
    Evaluates single conditions.

    Usage:
        evaluator = ConditionEvaluator(device_state=StaticDeviceState(screen_on=True))
        matched = evaluator.evaluate(condition, context)
    """

    def __init__(
        self,
        device_state: DeviceStateProvider | None = None,
        pattern_matcher: PatternMatcher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize condition evaluator.

        Args:
            device_state: Screen/charging state provider (DEVICE_STATE fails without one)
            pattern_matcher: Matcher for MATCHES_PATTERN (default: placeholder matcher)
            clock: Returns local wall-clock time (default: datetime.now)
        """
        self._device_state = device_state
        self._pattern_matcher = pattern_matcher or PlaceholderPatternMatcher()
        self._clock = clock or datetime.now
        self._location_warned = False

        self._handlers: dict[
            ConditionType, Callable[[Condition, NotificationContext], bool]
        ] = {
            ConditionType.TIME_OF_DAY: self._evaluate_time,
            ConditionType.DAY_OF_WEEK: self._evaluate_day,
            ConditionType.APP_PACKAGE: self._evaluate_app,
            ConditionType.NOTIFICATION_CONTENT: self._evaluate_content,
            ConditionType.NOTIFICATION_COUNT: self._evaluate_count,
            ConditionType.LAST_NOTIFICATION_TIME: self._evaluate_last_time,
            ConditionType.DEVICE_STATE: self._evaluate_device_state,
            ConditionType.LOCATION: self._evaluate_location,
        }

    @property
    def handled_types(self) -> frozenset[ConditionType]:
        """Condition types with a registered handler."""
        return frozenset(self._handlers)

    def evaluate(self, condition: Condition, context: NotificationContext) -> bool:
        """
        Evaluate a condition against a notification context.

        Returns:
            True if the condition matches; False on mismatch or any error
        """
        handler = self._handlers.get(condition.type)
        if handler is None:
            logger.warning(f"No handler for condition type {condition.type}")
            return False
        try:
            return bool(handler(condition, context))
        except Exception as e:
            logger.error(f"Error evaluating condition {condition.describe()!r}: {e}")
            return False

    # =========================================================================
    # Per-Type Handlers
    # =========================================================================

    def _evaluate_time(self, condition: Condition, context: NotificationContext) -> bool:
        now = self._clock()
        current = now.hour * 60 + now.minute
        value = condition.value

        if "-" in value:
            # Range form ignores the operator
            bounds = parse_time_range(value)
            if bounds is None:
                return False
            return in_time_range(current, *bounds)

        target = parse_time_to_minutes(value)
        op = condition.operator
        if op == ComparisonOperator.EQUALS:
            return current == target
        if op == ComparisonOperator.GREATER_THAN:
            return current > target
        if op == ComparisonOperator.LESS_THAN:
            return current < target
        return False

    def _evaluate_day(self, condition: Condition, context: NotificationContext) -> bool:
        day_of_week = self._clock().isoweekday()
        value = condition.value.lower()
        is_equals = condition.operator == ComparisonOperator.EQUALS

        if "," in value:
            for day in value.split(","):
                if matches_day(day.strip(), day_of_week):
                    return is_equals
            return condition.operator == ComparisonOperator.NOT_EQUALS

        if value == "weekday":
            matched = 1 <= day_of_week <= 5
        elif value == "weekend":
            matched = day_of_week in (6, 7)
        else:
            matched = matches_day(value, day_of_week)
        return matched if is_equals else not matched

    def _evaluate_app(self, condition: Condition, context: NotificationContext) -> bool:
        package_name = context.package_name
        value = condition.value
        op = condition.operator

        if op == ComparisonOperator.EQUALS:
            return package_name == value
        if op == ComparisonOperator.NOT_EQUALS:
            return package_name != value
        if op == ComparisonOperator.CONTAINS:
            return value in package_name
        if op == ComparisonOperator.NOT_CONTAINS:
            return value not in package_name
        return False

    def _evaluate_content(self, condition: Condition, context: NotificationContext) -> bool:
        content = context.notification_text.lower()
        value = condition.value.lower()
        op = condition.operator

        if op == ComparisonOperator.EQUALS:
            return content == value
        if op == ComparisonOperator.NOT_EQUALS:
            return content != value
        if op == ComparisonOperator.CONTAINS:
            return value in content
        if op == ComparisonOperator.NOT_CONTAINS:
            return value not in content
        if op == ComparisonOperator.MATCHES_PATTERN:
            return self._pattern_matcher.matches(context.notification_text, value)
        return False

    def _evaluate_count(self, condition: Condition, context: NotificationContext) -> bool:
        target = parse_int(condition.value)
        if target is None:
            return False
        count = context.recent_notification_count
        op = condition.operator

        if op == ComparisonOperator.EQUALS:
            return count == target
        if op == ComparisonOperator.NOT_EQUALS:
            return count != target
        if op == ComparisonOperator.GREATER_THAN:
            return count > target
        if op == ComparisonOperator.LESS_THAN:
            return count < target
        return False

    def _evaluate_last_time(self, condition: Condition, context: NotificationContext) -> bool:
        seconds = parse_int(condition.value)
        if seconds is None:
            return False
        elapsed_ms = context.timestamp - context.last_notification_time
        target_ms = seconds * 1000

        if condition.operator == ComparisonOperator.GREATER_THAN:
            return elapsed_ms > target_ms
        if condition.operator == ComparisonOperator.LESS_THAN:
            return elapsed_ms < target_ms
        return False

    def _evaluate_device_state(self, condition: Condition, context: NotificationContext) -> bool:
        if self._device_state is None:
            logger.warning("DEVICE_STATE condition evaluated without a device state provider")
            return False

        expected = condition.value.lower()
        if condition.parameter == SCREEN_STATE:
            screen_on = self._device_state.is_screen_interactive()
            result = screen_on == (expected in ("on", "true"))
            logger.debug(
                f"Screen state check - screen is {'ON' if screen_on else 'OFF'}, "
                f"expected {condition.value}, result: {result}"
            )
            return result
        if condition.parameter == CHARGING_STATE:
            charging = self._device_state.is_charging()
            result = charging == (expected in ("true", "charging"))
            logger.debug(
                f"Charging state check - device is {'CHARGING' if charging else 'NOT CHARGING'}, "
                f"expected {condition.value}, result: {result}"
            )
            return result

        logger.warning(f"Unknown device state type: {condition.parameter!r}")
        return False

    def _evaluate_location(self, condition: Condition, context: NotificationContext) -> bool:
        if not self._location_warned:
            self._location_warned = True
            logger.warning(
                f"Location conditions are not supported, treating as no match: {condition.value!r}"
            )
        return False
