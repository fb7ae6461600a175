"""
Action Application.

Folds a single Action into the shared EvaluationResult. Structured kinds
set result fields; intent kinds are appended to ``result.intents`` and
passed to an optional IntentSink.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..core.logging import get_logger
from .conditions import parse_int
from .models import Action, ActionType, EvaluationResult, IntentEvent, NotificationContext

if TYPE_CHECKING:
    from .sinks import IntentSink

logger = get_logger(__name__)


def _apply_block(action: Action, result: EvaluationResult) -> None:
    result.should_block = True


def _apply_private(action: Action, result: EvaluationResult) -> None:
    result.should_make_private = True


def _apply_delay(action: Action, result: EvaluationResult) -> None:
    seconds = parse_int(action.value)
    if seconds is None:
        logger.warning(f"Invalid delay value: {action.value!r}")
        return
    result.delay_seconds = seconds


def _apply_modify_text(action: Action, result: EvaluationResult) -> None:
    result.modified_text = action.value


# Structured action handlers; every other ActionType is an intent
FIELD_HANDLERS: dict[ActionType, Callable[[Action, EvaluationResult], None]] = {
    ActionType.BLOCK_NOTIFICATION: _apply_block,
    ActionType.MAKE_PRIVATE: _apply_private,
    ActionType.SET_DELAY: _apply_delay,
    ActionType.MODIFY_TEXT: _apply_modify_text,
}


def apply_action(
    action: Action,
    result: EvaluationResult,
    context: NotificationContext,
    sink: IntentSink | None = None,
    rule_name: str = "",
) -> None:
    """
    Apply one action to the result.

    Args:
        action: Action to apply
        result: Shared accumulator, mutated in place
        context: Notification being evaluated (app name goes on intents)
        sink: Receives intent events, if given
        rule_name: Name of the rule the action belongs to

    Raises:
        Exception: Whatever the sink raises; the rule evaluator catches it
    """
    handler = FIELD_HANDLERS.get(action.type)
    if handler is not None:
        handler(action, result)
        return

    if not action.type.is_intent:
        logger.warning(f"Unknown action type: {action.type}")
        return

    event = IntentEvent(
        action_type=action.type,
        value=action.value,
        app_name=context.app_name,
        rule_name=rule_name,
        parameter=action.parameter,
    )
    result.intents.append(event)
    if sink is not None:
        if not sink.emit(event):
            logger.warning(f"Intent sink rejected {action.type.name} from rule {rule_name!r}")
