"""
Conditional Notification Rules.

Decides, per notification, whether to block it, make it private, delay it
or rewrite its text, based on user-authored rules evaluated in priority
order.

Key Components:
- ConditionEvaluator: Evaluates one typed condition (never raises)
- RuleEvaluator: Sorts rules by priority and folds matching actions into a result
- RuleStore: In-memory rule list mirrored to a JSON document
- TemplateLoader: Built-in and user-defined quick templates
- BuilderRegistry: Kind-to-builder strategies for shorthand input and descriptions

Usage:
    engine = create_engine(device_state=StaticDeviceState(screen_on=True))
    result = engine.evaluate(NotificationContext(app_name="Chat", package_name="com.chat"))
    if result.should_block:
        ...
"""

from .actions import apply_action
from .conditions import ConditionEvaluator, DeviceStateProvider, StaticDeviceState
from .errors import IncompatibleVersionError, RulesError, RulesFormatError, UnknownKindError
from .evaluator import RuleEngine, RuleEvaluator, RuleTrace, create_engine
from .models import (
    RULES_VERSION,
    Action,
    ActionType,
    ComparisonOperator,
    Condition,
    ConditionType,
    EvaluationResult,
    IntentEvent,
    NotificationContext,
    Rule,
)
from .patterns import PatternMatcher, PlaceholderPatternMatcher
from .registry import BuilderRegistry, get_builder_registry, reset_registry
from .serialization import parse_rules, parse_rules_isolated, serialize_rules
from .sinks import CollectingIntentSink, IntentSink, LogIntentSink, WebhookIntentSink
from .store import JsonFileStorage, MemoryStorage, RuleStorage, RuleStore
from .templates import TEMPLATE_REGISTRY, TemplateLoader, create_example_rules
from .validation import ValidationError, ValidationResult, validate_rule, validate_rules

__all__ = [
    # Models
    "RULES_VERSION",
    "Action",
    "ActionType",
    "ComparisonOperator",
    "Condition",
    "ConditionType",
    "EvaluationResult",
    "IntentEvent",
    "NotificationContext",
    "Rule",
    # Errors
    "IncompatibleVersionError",
    "RulesError",
    "RulesFormatError",
    "UnknownKindError",
    # Evaluation
    "ConditionEvaluator",
    "DeviceStateProvider",
    "PatternMatcher",
    "PlaceholderPatternMatcher",
    "RuleEngine",
    "RuleEvaluator",
    "RuleTrace",
    "StaticDeviceState",
    "apply_action",
    "create_engine",
    # Sinks
    "CollectingIntentSink",
    "IntentSink",
    "LogIntentSink",
    "WebhookIntentSink",
    # Persistence
    "JsonFileStorage",
    "MemoryStorage",
    "RuleStorage",
    "RuleStore",
    "parse_rules",
    "parse_rules_isolated",
    "serialize_rules",
    # Templates
    "TEMPLATE_REGISTRY",
    "TemplateLoader",
    "create_example_rules",
    # Registry
    "BuilderRegistry",
    "get_builder_registry",
    "reset_registry",
    # Validation
    "ValidationError",
    "ValidationResult",
    "validate_rule",
    "validate_rules",
]
