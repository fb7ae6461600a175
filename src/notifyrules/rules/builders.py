"""
Condition and Action Builders.

Builders turn short user input (a CLI argument, a form field) into
Condition/Action objects and describe existing ones in plain words.
They are presentation helpers: the evaluator never consults them.

Condition value shorthand:
| Builder | Input              | Result                                  |
|---------|--------------------|-----------------------------------------|
| time    | 22:00-06:00        | TIME_OF_DAY IN_RANGE                    |
| time    | >22:00 / <07:00    | TIME_OF_DAY GREATER_THAN / LESS_THAN    |
| day     | weekday, !sat      | DAY_OF_WEEK EQUALS / NOT_EQUALS         |
| app     | com.x, ~x, !com.x  | APP_PACKAGE EQUALS / CONTAINS / NOT_EQUALS |
| content | otp, ~[NUMBER], !x | NOTIFICATION_CONTENT CONTAINS / MATCHES_PATTERN / NOT_CONTAINS |
| count   | >5, <2, 3          | NOTIFICATION_COUNT                      |
| since   | >60, <10           | LAST_NOTIFICATION_TIME (seconds)        |
| device  | on, off, charging  | DEVICE_STATE                            |
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .conditions import CHARGING_STATE, SCREEN_STATE, parse_int
from .models import Action, ActionType, ComparisonOperator, Condition, ConditionType

_OP = ComparisonOperator


def _split_prefix(value: str, prefixes: str) -> tuple[str, str]:
    """Split a one-character operator prefix off value."""
    value = value.strip()
    if value and value[0] in prefixes:
        return value[0], value[1:].strip()
    return "", value


# =============================================================================
# Base Builders
# =============================================================================


class ConditionBuilder(ABC):
    """
    Base implementation for condition builders.

    Subclasses must implement build() and may override describe().
    """

    _kind: ConditionType = ConditionType.TIME_OF_DAY
    _display_name: str = ""
    _description: str = ""
    _aliases: tuple[str, ...] = ()

    @property
    def kind(self) -> ConditionType:
        return self._kind

    @property
    def display_name(self) -> str:
        return self._display_name or self._kind.display_name

    @property
    def description(self) -> str:
        return self._description

    @property
    def aliases(self) -> tuple[str, ...]:
        return self._aliases

    @abstractmethod
    def build(self, value: str) -> Condition:
        """
        Build a condition from shorthand input.

        Raises:
            ValueError: Input cannot form a valid condition
        """
        ...

    def describe(self, condition: Condition) -> str:
        """Plain-words description of a condition of this kind."""
        return condition.describe()


class ActionBuilder(ABC):
    """
    Base implementation for action builders.
    """

    _kind: ActionType = ActionType.BLOCK_NOTIFICATION
    _display_name: str = ""
    _description: str = ""
    _aliases: tuple[str, ...] = ()

    @property
    def kind(self) -> ActionType:
        return self._kind

    @property
    def display_name(self) -> str:
        return self._display_name or self._kind.display_name

    @property
    def description(self) -> str:
        return self._description

    @property
    def aliases(self) -> tuple[str, ...]:
        return self._aliases

    @abstractmethod
    def build(self, value: str = "") -> Action:
        """
        Build an action from shorthand input.

        Raises:
            ValueError: Input cannot form a valid action
        """
        ...

    def describe(self, action: Action) -> str:
        return action.describe()


# =============================================================================
# Built-in Condition Builders
# =============================================================================


class TimeConditionBuilder(ConditionBuilder):
    """Time of day: a range, or a single time with >/< for after/before."""

    _kind = ConditionType.TIME_OF_DAY
    _description = "Trigger based on current time"
    _aliases = ("time",)

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "<>")
        if not rest:
            raise ValueError("Time condition needs HH:MM or HH:MM-HH:MM")
        if "-" in rest and not prefix:
            return Condition(self._kind, "", _OP.IN_RANGE, rest)
        operator = {">": _OP.GREATER_THAN, "<": _OP.LESS_THAN}.get(prefix, _OP.EQUALS)
        return Condition(self._kind, "", operator, rest)

    def describe(self, condition: Condition) -> str:
        if "-" in condition.value:
            start, _, end = condition.value.partition("-")
            return f"between {start.strip()} and {end.strip()}"
        if condition.operator == _OP.GREATER_THAN:
            return f"after {condition.value}"
        if condition.operator == _OP.LESS_THAN:
            return f"before {condition.value}"
        return f"at {condition.value}"


class DayConditionBuilder(ConditionBuilder):
    """Day of week: day names, weekday or weekend; '!' negates."""

    _kind = ConditionType.DAY_OF_WEEK
    _description = "Trigger on specific days"
    _aliases = ("day",)

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "!")
        if not rest:
            raise ValueError("Day condition needs a day name, weekday or weekend")
        operator = _OP.NOT_EQUALS if prefix else _OP.EQUALS
        return Condition(self._kind, "", operator, rest.lower())

    def describe(self, condition: Condition) -> str:
        days = condition.value.replace(",", ", ")
        if condition.operator == _OP.EQUALS:
            return f"on {days}"
        return f"not on {days}"


class AppConditionBuilder(ConditionBuilder):
    """App package: exact by default, '~' for contains, '!' for not equals."""

    _kind = ConditionType.APP_PACKAGE
    _description = "Trigger for specific apps"
    _aliases = ("app", "package")

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "~!")
        if not rest:
            raise ValueError("App condition needs a package name")
        operator = {"~": _OP.CONTAINS, "!": _OP.NOT_EQUALS}.get(prefix, _OP.EQUALS)
        return Condition(self._kind, "", operator, rest)


class ContentConditionBuilder(ConditionBuilder):
    """Notification text: contains by default, '~' pattern, '!' not contains, '=' equals."""

    _kind = ConditionType.NOTIFICATION_CONTENT
    _description = "Trigger based on notification text"
    _aliases = ("content", "text")

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "~!=")
        if not rest:
            raise ValueError("Content condition needs some text")
        operator = {
            "~": _OP.MATCHES_PATTERN,
            "!": _OP.NOT_CONTAINS,
            "=": _OP.EQUALS,
        }.get(prefix, _OP.CONTAINS)
        return Condition(self._kind, "", operator, rest)


class CountConditionBuilder(ConditionBuilder):
    """Recent notification count compared with an integer."""

    _kind = ConditionType.NOTIFICATION_COUNT
    _description = "Trigger based on how many notifications arrived recently"
    _aliases = ("count",)

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "<>!")
        if parse_int(rest) is None:
            raise ValueError(f"Count condition needs an integer, got {value!r}")
        operator = {
            ">": _OP.GREATER_THAN,
            "<": _OP.LESS_THAN,
            "!": _OP.NOT_EQUALS,
        }.get(prefix, _OP.EQUALS)
        return Condition(self._kind, "", operator, rest)


class ElapsedConditionBuilder(ConditionBuilder):
    """Seconds since the previous notification, '>' or '<' required."""

    _kind = ConditionType.LAST_NOTIFICATION_TIME
    _description = "Trigger based on time since the last notification"
    _aliases = ("since", "since_last")

    def build(self, value: str) -> Condition:
        prefix, rest = _split_prefix(value, "<>")
        if not prefix or parse_int(rest) is None:
            raise ValueError(f"Elapsed-time condition needs >SECONDS or <SECONDS, got {value!r}")
        operator = _OP.GREATER_THAN if prefix == ">" else _OP.LESS_THAN
        return Condition(self._kind, "", operator, rest)

    def describe(self, condition: Condition) -> str:
        word = "more" if condition.operator == _OP.GREATER_THAN else "less"
        return f"{word} than {condition.value}s since the last notification"


class DeviceStateConditionBuilder(ConditionBuilder):
    """Screen on/off or charging/not_charging."""

    _kind = ConditionType.DEVICE_STATE
    _description = "Trigger based on device status"
    _aliases = ("device", "state")

    STATES: dict[str, str] = {
        "on": SCREEN_STATE,
        "off": SCREEN_STATE,
        "charging": CHARGING_STATE,
        "not_charging": CHARGING_STATE,
    }

    def build(self, value: str) -> Condition:
        state = value.strip().lower()
        parameter = self.STATES.get(state)
        if parameter is None:
            raise ValueError(f"Device state must be one of: {', '.join(self.STATES)}")
        return Condition(self._kind, parameter, _OP.EQUALS, state)

    def describe(self, condition: Condition) -> str:
        if condition.parameter == SCREEN_STATE:
            return f"screen is {condition.value}"
        if condition.parameter == CHARGING_STATE:
            return f"device is {condition.value.replace('_', ' ')}"
        return condition.describe()


# =============================================================================
# Built-in Action Builders
# =============================================================================


class BlockActionBuilder(ActionBuilder):
    _kind = ActionType.BLOCK_NOTIFICATION
    _description = "Completely block the notification"
    _aliases = ("block",)

    def build(self, value: str = "") -> Action:
        return Action(self._kind, "", "true")


class PrivateActionBuilder(ActionBuilder):
    _kind = ActionType.MAKE_PRIVATE
    _description = "Replace content with [PRIVATE]"
    _aliases = ("private",)

    def build(self, value: str = "") -> Action:
        return Action(self._kind, "", "true")


class DelayActionBuilder(ActionBuilder):
    _kind = ActionType.SET_DELAY
    _description = "Delay notification by specified seconds"
    _aliases = ("delay",)

    def build(self, value: str = "") -> Action:
        value = value.strip()
        if parse_int(value) is None:
            raise ValueError(f"Delay needs an integer number of seconds, got {value!r}")
        return Action(self._kind, "", value)

    def describe(self, action: Action) -> str:
        return f"delay {action.value}s"


class ModifyTextActionBuilder(ActionBuilder):
    _kind = ActionType.MODIFY_TEXT
    _description = "Replace notification text"
    _aliases = ("modify", "rewrite")

    def build(self, value: str = "") -> Action:
        if not value:
            raise ValueError("Modify text needs replacement text")
        return Action(self._kind, "", value)


class MasterSwitchActionBuilder(ActionBuilder):
    """One builder class serves both master switch directions."""

    _display_name = "Master Switch"
    _description = "Enable or disable notification reading"

    def __init__(self, kind: ActionType) -> None:
        if kind not in (ActionType.DISABLE_MASTER_SWITCH, ActionType.ENABLE_MASTER_SWITCH):
            raise ValueError(f"Not a master switch action: {kind}")
        self._kind = kind
        self._aliases = ("disable",) if kind == ActionType.DISABLE_MASTER_SWITCH else ("enable",)

    def build(self, value: str = "") -> Action:
        return Action(self._kind, "", "true")


class LogEventActionBuilder(ActionBuilder):
    _kind = ActionType.LOG_EVENT
    _description = "Log a custom message"
    _aliases = ("log",)

    def build(self, value: str = "") -> Action:
        if not value:
            raise ValueError("Log event needs a message")
        return Action(self._kind, "", value)
