"""
Quick Rule Templates.

Templates are ready-made rules a user can add in one step. Each creates a
rule with id "template_<key>_<epoch millis>".

Template Registry:
| Template   | Priority | Conditions                                  | Action                |
|------------|----------|---------------------------------------------|-----------------------|
| night_mode | 8        | 22:00-06:00                                 | DISABLE_MASTER_SWITCH |
| screen_on  | 9        | screen is on                                | BLOCK_NOTIFICATION    |
| work_hours | 6        | 09:00-17:00, weekdays list, social apps     | MAKE_PRIVATE          |
| focus_mode | 5        | distracting apps                            | SET_DELAY 300         |
| quiet_time | 10       | 23:00-07:00                                 | BLOCK_NOTIFICATION    |

Note: work_hours' day condition uses CONTAINS with a day list, which never
matches, and the app conditions of work_hours/focus_mode test whether the
package name contains the whole comma-separated string. Both are kept as
shipped; use `validate` to see the warnings.

User templates live in userdata/templates/*.yaml and shadow built-ins
with the same key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.logging import get_logger
from .errors import RulesError
from .models import (
    Action,
    ActionType,
    ComparisonOperator,
    Condition,
    ConditionType,
    Rule,
    generate_rule_id,
)

if TYPE_CHECKING:
    from .store import RuleStore

logger = get_logger(__name__)

SOCIAL_MEDIA_PACKAGES = (
    "com.instagram.android,com.facebook.katana,com.twitter.android,"
    "com.snapchat.android,com.tiktok"
)
DISTRACTING_PACKAGES = (
    "com.instagram.android,com.facebook.katana,com.twitter.android,"
    "com.youtube.android,com.reddit.frontpage"
)


# =============================================================================
# Template Registry
# =============================================================================


@dataclass
class TemplateSpec:
    """Specification for a quick rule template."""

    key: str
    name: str
    description: str
    priority: int
    conditions: list[Condition] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    builtin: bool = True

    def create_rule(self) -> Rule:
        """New enabled rule with fresh id and timestamps."""
        return Rule(
            id=generate_rule_id(f"template_{self.key}"),
            name=self.name,
            description=self.description,
            enabled=True,
            priority=self.priority,
            conditions=[
                Condition(c.type, c.parameter, c.operator, c.value) for c in self.conditions
            ],
            actions=[Action(a.type, a.parameter, a.value) for a in self.actions],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "builtin": self.builtin,
            "conditions": [c.describe() for c in self.conditions],
            "actions": [a.describe() for a in self.actions],
        }


# Built-in templates
TEMPLATE_REGISTRY: dict[str, TemplateSpec] = {
    "night_mode": TemplateSpec(
        key="night_mode",
        name="Night Mode",
        description="Automatically disables notification reading when charging at night "
        "(10 PM - 6 AM)",
        priority=8,
        conditions=[
            Condition(
                ConditionType.TIME_OF_DAY,
                "time_range",
                ComparisonOperator.IN_RANGE,
                "22:00-06:00",
            )
        ],
        actions=[Action(ActionType.DISABLE_MASTER_SWITCH)],
    ),
    "screen_on": TemplateSpec(
        key="screen_on",
        name="Screen On",
        description="Prevents notifications when actively using phone (screen is on)",
        priority=9,
        conditions=[
            Condition(ConditionType.DEVICE_STATE, "screen_state", ComparisonOperator.EQUALS, "on")
        ],
        actions=[Action(ActionType.BLOCK_NOTIFICATION)],
    ),
    "work_hours": TemplateSpec(
        key="work_hours",
        name="Work Hours",
        description="Makes social media notifications private during work hours "
        "(9 AM - 5 PM, weekdays)",
        priority=6,
        conditions=[
            Condition(
                ConditionType.TIME_OF_DAY,
                "time_range",
                ComparisonOperator.IN_RANGE,
                "09:00-17:00",
            ),
            Condition(
                ConditionType.DAY_OF_WEEK,
                "weekdays",
                ComparisonOperator.CONTAINS,
                "MON,TUE,WED,THU,FRI",
            ),
            Condition(
                ConditionType.APP_PACKAGE,
                "social_media",
                ComparisonOperator.CONTAINS,
                SOCIAL_MEDIA_PACKAGES,
            ),
        ],
        actions=[Action(ActionType.MAKE_PRIVATE)],
    ),
    "focus_mode": TemplateSpec(
        key="focus_mode",
        name="Focus Mode",
        description="Adds 5-minute delay to notifications from distracting apps",
        priority=5,
        conditions=[
            Condition(
                ConditionType.APP_PACKAGE,
                "distracting_apps",
                ComparisonOperator.CONTAINS,
                DISTRACTING_PACKAGES,
            )
        ],
        actions=[Action(ActionType.SET_DELAY, "delay_seconds", "300")],
    ),
    "quiet_time": TemplateSpec(
        key="quiet_time",
        name="Quiet Time",
        description="Blocks all notifications during quiet hours (11 PM - 7 AM)",
        priority=10,
        conditions=[
            Condition(
                ConditionType.TIME_OF_DAY,
                "quiet_hours",
                ComparisonOperator.IN_RANGE,
                "23:00-07:00",
            )
        ],
        actions=[Action(ActionType.BLOCK_NOTIFICATION)],
    ),
}


# =============================================================================
# User Templates
# =============================================================================


class TemplateLoader:
    """
    Template loader with user-defined overrides.

    Resolves templates in order:
    1. User-defined templates (userdata/templates/*.yaml)
    2. Built-in templates

    A user template file holds one rule body in the persisted rule shape
    plus an optional ``key`` (default: file stem):

        key: late_chat
        name: Late chat
        priority: 4
        conditions:
          - {type: TIME_OF_DAY, operator: GREATER_THAN, value: "23:00"}
        actions:
          - {type: MAKE_PRIVATE}

    Usage:
        loader = TemplateLoader(settings.effective_template_dir)
        rule = loader.create_rule("late_chat")
    """

    def __init__(self, user_template_dir: Path | None = None) -> None:
        """
        Initialize template loader.

        Args:
            user_template_dir: Directory for user-defined templates
        """
        self._user_dir = user_template_dir
        self._user_templates: dict[str, TemplateSpec] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        """Lazy-load user templates on first access."""
        if self._loaded:
            return
        self._loaded = True

        if self._user_dir and self._user_dir.exists():
            self._load_user_templates()

    def _load_user_templates(self) -> None:
        """Load all user-defined templates from the user directory."""
        import yaml

        if not self._user_dir:
            return

        for template_file in sorted(self._user_dir.glob("*.yaml")):
            try:
                with open(template_file, encoding="utf-8") as f:
                    data = yaml.safe_load(f)

                if not isinstance(data, dict):
                    logger.warning(f"Invalid template file: {template_file}")
                    continue

                key = str(data.get("key") or template_file.stem)
                spec = self._parse_user_template(key, data)
                self._user_templates[key] = spec
                logger.debug(f"Loaded user template: {key}")

            except (OSError, ValueError, yaml.YAMLError, RulesError) as e:
                logger.warning(f"Failed to load template {template_file}: {e}")

    def _parse_user_template(self, key: str, data: dict[str, Any]) -> TemplateSpec:
        """
        Parse a user template definition.

        Raises:
            RulesError: Malformed rule body
        """
        rule = Rule.from_dict(data, path=key)
        return TemplateSpec(
            key=key,
            name=rule.name or key,
            description=rule.description,
            priority=rule.priority,
            conditions=rule.conditions,
            actions=rule.actions,
            builtin=False,
        )

    def get_template(self, key: str) -> TemplateSpec | None:
        """Get a template by key, user templates first."""
        self._ensure_loaded()
        if key in self._user_templates:
            return self._user_templates[key]
        return TEMPLATE_REGISTRY.get(key)

    def list_templates(self) -> list[TemplateSpec]:
        """All templates, built-ins shadowed by user templates."""
        self._ensure_loaded()
        merged = dict(TEMPLATE_REGISTRY)
        merged.update(self._user_templates)
        return list(merged.values())

    def create_rule(self, key: str) -> Rule:
        """
        Create a new rule from a template.

        Raises:
            KeyError: Unknown template key
        """
        spec = self.get_template(key)
        if spec is None:
            raise KeyError(f"Unknown template: {key}")
        return spec.create_rule()


# =============================================================================
# Example Rules
# =============================================================================


def build_example_rules() -> list[Rule]:
    """The two demonstration rules."""
    work_hours = Rule(
        name="Work Hours Focus",
        description="Keeps you focused during work hours by making social media "
        "notifications private, so you stay productive but don't miss updates",
        priority=10,
        conditions=[
            Condition(ConditionType.DAY_OF_WEEK, "", ComparisonOperator.EQUALS, "weekday"),
            Condition(ConditionType.TIME_OF_DAY, "", ComparisonOperator.IN_RANGE, "09:00-17:00"),
            Condition(ConditionType.APP_PACKAGE, "", ComparisonOperator.CONTAINS, "facebook"),
        ],
        actions=[
            Action(ActionType.MAKE_PRIVATE, "", "true"),
            Action(ActionType.LOG_EVENT, "", "Work hours - made social media notification private"),
        ],
    )

    evening = Rule(
        name="Evening Quiet Time",
        description="Adds a short delay to notifications after 10 PM, giving you "
        "peaceful evenings while still keeping you informed",
        priority=5,
        conditions=[
            Condition(ConditionType.TIME_OF_DAY, "", ComparisonOperator.GREATER_THAN, "22:00"),
        ],
        actions=[
            Action(ActionType.SET_DELAY, "", "3"),
            Action(ActionType.LOG_EVENT, "", "Evening quiet time - added delay"),
        ],
    )

    return [work_hours, evening]


def create_example_rules(store: RuleStore) -> list[Rule]:
    """
    Add the example rules if the store is empty.

    Returns:
        Rules added (empty if the store already had rules)
    """
    if len(store) > 0:
        return []

    rules = build_example_rules()
    for rule in rules:
        store.add_rule(rule)
    logger.info("Created example conditional rules")
    return rules
