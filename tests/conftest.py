"""
notifyrules Test Suite - Shared Fixtures and Configuration

Provides rule/context factories, a fixed clock, and isolation of settings,
logging and registry singletons between tests.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from notifyrules.rules import (
    Action,
    ActionType,
    ComparisonOperator,
    Condition,
    ConditionEvaluator,
    NotificationContext,
    Rule,
    StaticDeviceState,
)

# Wednesday 2026-01-14 10:30 local time
WEDNESDAY_MORNING = datetime(2026, 1, 14, 10, 30)


# =============================================================================
# Singleton Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_all_singletons(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Reset module-level singletons between tests.

    Settings are pointed at a per-test instance root so no test touches
    real user data. Logging is reset so caplog can capture records.
    """
    for var in (
        "NOTIFYRULES_RULES_PATH",
        "NOTIFYRULES_TEMPLATE_DIR",
        "NOTIFYRULES_ISOLATE_BAD_RECORDS",
        "NOTIFYRULES_INTENT_WEBHOOK_URL",
        "NOTIFYRULES_LOG_LEVEL",
        "NOTIFYRULES_DEBUG",
        "NOTIFYRULES_LOG_JSON",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NOTIFYRULES_INSTANCE_ROOT", str(tmp_path))

    def do_reset():
        from notifyrules.core.config import reset_settings
        from notifyrules.core.logging import reset_logging
        from notifyrules.rules.registry import reset_registry

        # Settings first - logging reads from settings
        reset_settings()
        reset_logging()
        reset_registry()

    do_reset()
    yield
    do_reset()


# =============================================================================
# Factories
# =============================================================================


def make_condition(kind: str, operator: str, value: str, parameter: str = "") -> Condition:
    """Build a condition from enum member names."""
    from notifyrules.rules import ConditionType

    return Condition(ConditionType[kind], parameter, ComparisonOperator[operator], value)


def make_rule(
    name: str = "Rule",
    priority: int = 5,
    conditions: list[Condition] | None = None,
    actions: list[Action] | None = None,
    enabled: bool = True,
    rule_id: str | None = None,
) -> Rule:
    """Build a rule; defaults to one BLOCK_NOTIFICATION action."""
    rule = Rule(
        name=name,
        priority=priority,
        enabled=enabled,
        conditions=conditions or [],
        actions=actions if actions is not None else [Action(ActionType.BLOCK_NOTIFICATION)],
    )
    if rule_id is not None:
        rule.id = rule_id
    return rule


@pytest.fixture
def fixed_clock():
    """Clock factory returning a constant datetime."""

    def factory(moment: datetime = WEDNESDAY_MORNING):
        return lambda: moment

    return factory


@pytest.fixture
def condition_evaluator():
    """Evaluator on Wednesday 10:30 with screen off, not charging."""
    return ConditionEvaluator(
        device_state=StaticDeviceState(screen_on=False, charging=False),
        clock=lambda: WEDNESDAY_MORNING,
    )


@pytest.fixture
def context():
    """A chat notification with one second since the previous notification."""
    return NotificationContext(
        app_name="Chat",
        package_name="com.example.chat",
        notification_text="Your code is 123456",
        timestamp=1_700_000_010_000,
        recent_notification_count=3,
        last_notification_time=1_700_000_009_000,
    )


@pytest.fixture
def rule_factory():
    """
    Fixture providing make_rule.

    Usage:
        def test_something(rule_factory):
            rule = rule_factory("Night", priority=8)
    """
    return make_rule


@pytest.fixture
def condition_factory():
    """Fixture providing make_condition (enum member names in, Condition out)."""
    return make_condition
