"""
Rule Evaluator.

Applies a rule list to one notification:
1. Sort a copy of the rules by priority, highest first (stable)
2. Skip disabled rules
3. AND all conditions, stopping at the first failure
4. Apply every action of a matching rule to one shared result
5. Keep going: there is no first-match-wins

Because fields are overwritten, a lower-priority rule applied later wins
for delay_seconds and modified_text. should_block and should_make_private
never revert once set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.logging import get_logger
from .actions import apply_action
from .conditions import ConditionEvaluator, DeviceStateProvider
from .models import Condition, EvaluationResult, NotificationContext, Rule

if TYPE_CHECKING:
    from .sinks import IntentSink
    from .store import RuleStore

logger = get_logger(__name__)


@dataclass
class RuleTrace:
    """
    Why one rule did or did not fire.

    status is "disabled", "matched" or "failed". For failed rules,
    failed_condition is the index of the first condition that did not match.
    """

    rule_id: str
    rule_name: str
    priority: int
    status: str
    failed_condition: int | None = None
    condition_description: str | None = None
    actions: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.status == "matched"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "priority": self.priority,
            "status": self.status,
        }
        if self.failed_condition is not None:
            result["failed_condition"] = self.failed_condition
            result["condition"] = self.condition_description
        if self.actions:
            result["actions"] = self.actions
        return result


def sort_by_priority(rules: list[Rule]) -> list[Rule]:
    """Copy of rules ordered by priority descending; ties keep input order."""
    return sorted(rules, key=lambda r: r.priority, reverse=True)


class RuleEvaluator:
    """
    Evaluates rule lists against notification contexts.

    Usage:
        evaluator = RuleEvaluator(ConditionEvaluator(device_state=provider))
        result = evaluator.apply_rules(rules, context)
        if result.should_block:
            ...
    """

    def __init__(
        self,
        condition_evaluator: ConditionEvaluator | None = None,
        sink: IntentSink | None = None,
    ) -> None:
        """
        Initialize rule evaluator.

        Args:
            condition_evaluator: Evaluates single conditions
            sink: Receives intent events from matching rules
        """
        self._conditions = condition_evaluator or ConditionEvaluator()
        self._sink = sink

    @property
    def condition_evaluator(self) -> ConditionEvaluator:
        return self._conditions

    def evaluate_conditions(
        self,
        conditions: list[Condition],
        context: NotificationContext,
    ) -> bool:
        """AND all conditions; an empty list always matches."""
        return self._first_failure(conditions, context) is None

    def _first_failure(
        self,
        conditions: list[Condition],
        context: NotificationContext,
    ) -> int | None:
        for index, condition in enumerate(conditions):
            if not self._conditions.evaluate(condition, context):
                return index
        return None

    def apply_rules(
        self,
        rules: list[Rule],
        context: NotificationContext,
    ) -> EvaluationResult:
        """
        Apply all matching rules to a notification.

        Args:
            rules: Rules to consider (not modified)
            context: Notification being evaluated

        Returns:
            Accumulated EvaluationResult
        """
        result = EvaluationResult()
        if not rules:
            return result

        for rule in sort_by_priority(rules):
            if not rule.enabled:
                continue
            if not self.evaluate_conditions(rule.conditions, context):
                continue

            logger.debug(f"Rule matched: {rule.name} (priority {rule.priority})")
            self._apply_actions(rule, result, context)
            result.applied_rule_names.append(rule.name)
            result.has_changes = True

        if result.has_changes:
            logger.debug(f"Applied rules for {context.app_name}: {result.applied_rules}")

        return result

    def _apply_actions(
        self,
        rule: Rule,
        result: EvaluationResult,
        context: NotificationContext,
    ) -> None:
        for action in rule.actions:
            try:
                apply_action(action, result, context, self._sink, rule.name)
            except Exception as e:
                logger.error(f"Error applying action {action.type.name} of rule {rule.name!r}: {e}")

    def explain(
        self,
        rules: list[Rule],
        context: NotificationContext,
    ) -> list[RuleTrace]:
        """
        Trace each rule in evaluation order without applying any actions.

        Returns:
            One RuleTrace per rule, highest priority first
        """
        traces: list[RuleTrace] = []
        for rule in sort_by_priority(rules):
            trace = RuleTrace(
                rule_id=rule.id,
                rule_name=rule.name,
                priority=rule.priority,
                status="disabled",
            )
            if rule.enabled:
                failed = self._first_failure(rule.conditions, context)
                if failed is None:
                    trace.status = "matched"
                    trace.actions = [a.describe() for a in rule.actions]
                else:
                    trace.status = "failed"
                    trace.failed_condition = failed
                    trace.condition_description = rule.conditions[failed].describe()
            traces.append(trace)
        return traces


class RuleEngine:
    """
    Evaluates notifications against the rules held by a RuleStore.

    Usage:
        engine = RuleEngine(RuleStore(JsonFileStorage(path)))
        result = engine.evaluate(context)
    """

    def __init__(
        self,
        store: RuleStore,
        evaluator: RuleEvaluator | None = None,
    ) -> None:
        self._store = store
        self._evaluator = evaluator or RuleEvaluator()

    @property
    def store(self) -> RuleStore:
        return self._store

    @property
    def evaluator(self) -> RuleEvaluator:
        return self._evaluator

    def evaluate(self, context: NotificationContext) -> EvaluationResult:
        """Apply the store's current rules to a notification."""
        return self._evaluator.apply_rules(self._store.get_all_rules(), context)

    def explain(self, context: NotificationContext) -> list[RuleTrace]:
        """Trace the store's current rules for a notification."""
        return self._evaluator.explain(self._store.get_all_rules(), context)


def create_default_sink(webhook_url: str | None = None) -> IntentSink:
    """
    Sink used when none is given: log intents, and POST them too if a
    webhook URL is configured.
    """
    from .sinks import FanOutIntentSink, LogIntentSink, WebhookIntentSink

    if not webhook_url:
        return LogIntentSink()
    return FanOutIntentSink([LogIntentSink(), WebhookIntentSink(webhook_url)])


def create_engine(
    store: RuleStore | None = None,
    device_state: DeviceStateProvider | None = None,
    sink: IntentSink | None = None,
) -> RuleEngine:
    """
    Factory function to create a rule engine from settings.

    Args:
        store: Rule store (default: file-backed store from settings)
        device_state: Screen/charging state provider
        sink: Intent sink (default: log, plus webhook if configured)

    Returns:
        Configured RuleEngine instance
    """
    from ..core.config import get_settings
    from .store import RuleStore

    settings = get_settings()
    if store is None:
        store = RuleStore.from_settings(settings)
    if sink is None:
        sink = create_default_sink(settings.intent_webhook_url)

    evaluator = RuleEvaluator(ConditionEvaluator(device_state=device_state), sink=sink)
    return RuleEngine(store, evaluator)
