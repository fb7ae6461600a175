"""
Rule Engine Data Models.

Core data structures for conditional notification filtering: rules and
their conditions/actions (persisted), and the per-notification context
and result (transient).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..core.formatters import current_millis, get_rule_timestamp
from .errors import RulesFormatError, UnknownKindError

# Current persisted document version
RULES_VERSION = "1.0"


# =============================================================================
# Enumerations
# =============================================================================


class ConditionType(Enum):
    """Kinds of condition a rule can test. Member names are the persisted form."""

    TIME_OF_DAY = "Time of Day"
    DAY_OF_WEEK = "Day of Week"
    APP_PACKAGE = "App Package"
    NOTIFICATION_CONTENT = "Notification Content"
    NOTIFICATION_COUNT = "Notification Count"
    LAST_NOTIFICATION_TIME = "Last Notification Time"
    DEVICE_STATE = "Device State"
    LOCATION = "Location"  # Not evaluated, always False

    @property
    def display_name(self) -> str:
        return self.value


class ComparisonOperator(Enum):
    """Comparison operators for conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "does not contain"
    GREATER_THAN = "greater than"
    LESS_THAN = "less than"
    MATCHES_PATTERN = "matches pattern"
    IN_RANGE = "in range"

    @property
    def display_name(self) -> str:
        return self.value


class ActionType(Enum):
    """Kinds of action a matching rule performs."""

    BLOCK_NOTIFICATION = "Block Notification"
    MAKE_PRIVATE = "Make Private"
    SET_DELAY = "Set Delay"
    CHANGE_BEHAVIOR = "Change Behavior"
    ADD_TO_FILTER = "Add to Filter"
    MODIFY_TEXT = "Modify Text"
    SET_PRIORITY = "Set Priority"
    DISABLE_MASTER_SWITCH = "Disable Master Switch"
    ENABLE_MASTER_SWITCH = "Enable Master Switch"
    LOG_EVENT = "Log Event"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def is_intent(self) -> bool:
        """True for kinds that only emit an intent event."""
        return self in INTENT_ACTION_TYPES


# Actions the engine records but never enforces
INTENT_ACTION_TYPES = frozenset(
    {
        ActionType.CHANGE_BEHAVIOR,
        ActionType.ADD_TO_FILTER,
        ActionType.SET_PRIORITY,
        ActionType.DISABLE_MASTER_SWITCH,
        ActionType.ENABLE_MASTER_SWITCH,
        ActionType.LOG_EVENT,
    }
)


def parse_enum(enum_cls: type[Enum], name: Any, path: str | None = None) -> Any:
    """
    Look up an enum member by exact, case-sensitive name.

    Raises:
        UnknownKindError: If name is not a member name
    """
    if not isinstance(name, str) or name not in enum_cls.__members__:
        raise UnknownKindError(enum_cls.__name__, str(name), path)
    return enum_cls[name]


def _require_str(data: dict[str, Any], key: str, path: str) -> str:
    """Required string field; numbers and booleans are coerced like JSON getString."""
    if key not in data or data[key] is None:
        raise RulesFormatError(f"missing required field '{key}'", path)
    value = data[key]
    if isinstance(value, (dict, list)):
        raise RulesFormatError(f"field '{key}' must be a string", path)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _opt_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None or isinstance(value, (dict, list)):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _opt_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return default


def _opt_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        return default
    try:
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            return int(float(value.strip()))
    except (ValueError, OverflowError):
        return default
    return default


# =============================================================================
# Persisted Models
# =============================================================================


@dataclass
class Condition:
    """
    A single typed predicate.

    ``parameter`` and ``value`` are free-form; their grammar depends on ``type``
    (e.g. DEVICE_STATE uses parameter "screen_state" or "charging_state").
    """

    type: ConditionType
    parameter: str
    operator: ComparisonOperator
    value: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "type": self.type.name,
            "parameter": self.parameter,
            "operator": self.operator.name,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "condition") -> Condition:
        """
        Parse a condition record.

        ``type``, ``operator`` and ``value`` are required; ``parameter``
        defaults to "".
        """
        if not isinstance(data, dict):
            raise RulesFormatError("condition must be an object", path)
        return cls(
            type=parse_enum(ConditionType, _require_str(data, "type", path), f"{path}.type"),
            parameter=_opt_str(data, "parameter", ""),
            operator=parse_enum(
                ComparisonOperator, _require_str(data, "operator", path), f"{path}.operator"
            ),
            value=_require_str(data, "value", path),
        )

    def describe(self) -> str:
        """Short human-readable form, e.g. 'Time of Day in range 22:00-06:00'."""
        label = self.type.display_name
        if self.parameter:
            label += f" [{self.parameter}]"
        return f"{label} {self.operator.display_name} {self.value}"


@dataclass
class Action:
    """A single typed effect applied when a rule matches."""

    type: ActionType
    parameter: str = ""
    value: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "type": self.type.name,
            "parameter": self.parameter,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "action") -> Action:
        """Parse an action record. Only ``type`` is required."""
        if not isinstance(data, dict):
            raise RulesFormatError("action must be an object", path)
        return cls(
            type=parse_enum(ActionType, _require_str(data, "type", path), f"{path}.type"),
            parameter=_opt_str(data, "parameter", ""),
            value=_opt_str(data, "value", ""),
        )

    def describe(self) -> str:
        if self.value:
            return f"{self.type.display_name}: {self.value}"
        return self.type.display_name


def generate_rule_id(prefix: str = "rule") -> str:
    """
    Generate a rule id from the current epoch milliseconds.

    Two ids generated within the same millisecond collide.
    """
    return f"{prefix}_{current_millis()}"


@dataclass
class Rule:
    """
    A named, prioritized bundle of AND-combined conditions and ordered actions.

    An empty condition list always triggers. Priority convention is 1-20,
    higher first; the range is not enforced.
    """

    id: str = field(default_factory=generate_rule_id)
    name: str = ""
    description: str = ""
    enabled: bool = True
    priority: int = 0
    conditions: list[Condition] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    created_date: str = field(default_factory=get_rule_timestamp)
    last_modified: str = field(default_factory=get_rule_timestamp)

    def touch(self) -> None:
        """Stamp a new last_modified."""
        self.last_modified = get_rule_timestamp()

    def copy(self) -> Rule:
        """Copy with independent condition/action lists."""
        return Rule(
            id=self.id,
            name=self.name,
            description=self.description,
            enabled=self.enabled,
            priority=self.priority,
            conditions=[
                Condition(c.type, c.parameter, c.operator, c.value) for c in self.conditions
            ],
            actions=[Action(a.type, a.parameter, a.value) for a in self.actions],
            created_date=self.created_date,
            last_modified=self.last_modified,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict using the persisted key names."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "priority": self.priority,
            "createdDate": self.created_date,
            "lastModified": self.last_modified,
            "conditions": [c.to_dict() for c in self.conditions],
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "rule") -> Rule:
        """
        Parse a rule record.

        Missing scalar fields fall back to defaults (fresh id and timestamps,
        enabled, priority 0). Any malformed condition or action fails the
        whole record.

        Raises:
            RulesFormatError: Malformed record
            UnknownKindError: Unrecognized enum name
        """
        if not isinstance(data, dict):
            raise RulesFormatError("rule must be an object", path)

        rule = cls()
        rule.id = _opt_str(data, "id", rule.id)
        rule.name = _opt_str(data, "name", "")
        rule.description = _opt_str(data, "description", "")
        rule.enabled = _opt_bool(data, "enabled", True)
        rule.priority = _opt_int(data, "priority", 0)
        rule.created_date = _opt_str(data, "createdDate", rule.created_date)
        rule.last_modified = _opt_str(data, "lastModified", rule.last_modified)

        conditions = data.get("conditions")
        if conditions is not None:
            if not isinstance(conditions, list):
                raise RulesFormatError("'conditions' must be a list", path)
            rule.conditions = [
                Condition.from_dict(c, f"{path}.conditions[{i}]") for i, c in enumerate(conditions)
            ]

        actions = data.get("actions")
        if actions is not None:
            if not isinstance(actions, list):
                raise RulesFormatError("'actions' must be a list", path)
            rule.actions = [
                Action.from_dict(a, f"{path}.actions[{i}]") for i, a in enumerate(actions)
            ]

        return rule


# =============================================================================
# Transient Models
# =============================================================================


@dataclass
class NotificationContext:
    """
    One notification occurrence plus short-term history.

    Built by the caller's ingestion pipeline; never persisted.
    Timestamps are epoch milliseconds.
    """

    app_name: str = ""
    package_name: str = ""
    notification_text: str = ""
    timestamp: int = field(default_factory=current_millis)
    recent_notification_count: int = 0
    last_notification_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_name": self.app_name,
            "package_name": self.package_name,
            "notification_text": self.notification_text,
            "timestamp": self.timestamp,
            "recent_notification_count": self.recent_notification_count,
            "last_notification_time": self.last_notification_time,
        }


@dataclass
class IntentEvent:
    """An advisory action the caller may choose to enforce."""

    action_type: ActionType
    value: str
    app_name: str
    rule_name: str = ""
    parameter: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "action_type": self.action_type.name,
            "value": self.value,
            "app_name": self.app_name,
            "rule_name": self.rule_name,
            "parameter": self.parameter,
        }


@dataclass
class EvaluationResult:
    """
    Aggregated outcome of all matching rules for one notification.

    Scalar fields are overwritten by each matching rule's actions, so a
    lower-priority rule applied later wins for ``delay_seconds`` and
    ``modified_text``. Boolean flags only ever go from False to True.
    """

    should_block: bool = False
    should_make_private: bool = False
    delay_seconds: int = -1  # -1 = no change requested
    modified_text: str | None = None
    applied_rule_names: list[str] = field(default_factory=list)
    has_changes: bool = False
    intents: list[IntentEvent] = field(default_factory=list)

    @property
    def applied_rules(self) -> str:
        """Names of the rules that fired, comma-joined."""
        return ", ".join(self.applied_rule_names)

    @property
    def has_delay(self) -> bool:
        return self.delay_seconds >= 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "should_block": self.should_block,
            "should_make_private": self.should_make_private,
            "delay_seconds": self.delay_seconds,
            "modified_text": self.modified_text,
            "applied_rules": list(self.applied_rule_names),
            "has_changes": self.has_changes,
            "intents": [i.to_dict() for i in self.intents],
        }
