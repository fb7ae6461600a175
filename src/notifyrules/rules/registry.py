"""
Builder Registry.

Central registry mapping condition/action kinds to their builders.
Builders are registered as factories and instantiated on first access.

The registry only serves presentation (CLI parsing, descriptions). Rule
evaluation dispatches on the closed enums directly and never looks here.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..core.logging import get_logger
from .errors import UnknownKindError
from .models import ActionType, ConditionType

if TYPE_CHECKING:
    from .builders import ActionBuilder, ConditionBuilder
    from .models import Action, Condition

logger = get_logger(__name__)


def split_kind_spec(spec: str) -> tuple[str, str]:
    """Split "KIND=VALUE" into (kind, value); value may be empty."""
    kind, _, value = spec.partition("=")
    return kind.strip(), value


class BuilderRegistry:
    """
    Registry for condition and action builders.

    Usage:
        registry = BuilderRegistry()
        registry.register_condition(ConditionType.TIME_OF_DAY, lambda: TimeConditionBuilder())

        condition = registry.build_condition("time=22:00-06:00")
    """

    def __init__(self) -> None:
        """Initialize empty registries."""
        self._conditions: dict[ConditionType, Callable[[], ConditionBuilder]] = {}
        self._condition_instances: dict[ConditionType, ConditionBuilder] = {}

        self._actions: dict[ActionType, Callable[[], ActionBuilder]] = {}
        self._action_instances: dict[ActionType, ActionBuilder] = {}

    # =========================================================================
    # Condition Builders
    # =========================================================================

    def register_condition(
        self,
        kind: ConditionType,
        factory: Callable[[], ConditionBuilder],
    ) -> None:
        """Register a condition builder factory."""
        self._conditions[kind] = factory
        self._condition_instances.pop(kind, None)
        logger.debug(f"Registered condition builder: {kind.display_name}")

    def get_condition_builder(self, kind: ConditionType) -> ConditionBuilder | None:
        """Get a condition builder instance (lazy-loaded)."""
        if kind in self._condition_instances:
            return self._condition_instances[kind]

        if kind not in self._conditions:
            return None

        try:
            instance = self._conditions[kind]()
            self._condition_instances[kind] = instance
            return instance
        except Exception as e:
            logger.error(f"Failed to instantiate condition builder {kind.name}: {e}")
            return None

    def list_conditions(self) -> list[ConditionType]:
        """Condition kinds with a registered builder."""
        return list(self._conditions.keys())

    def resolve_condition(self, name: str) -> ConditionBuilder:
        """
        Find a condition builder by alias or enum name (case-insensitive).

        Raises:
            UnknownKindError: No builder matches
        """
        key = name.strip().lower()
        for kind in self._conditions:
            builder = self.get_condition_builder(kind)
            if builder is None:
                continue
            if key == kind.name.lower() or key in builder.aliases:
                return builder
        raise UnknownKindError("condition kind", name)

    def build_condition(self, spec: str) -> Condition:
        """
        Build a condition from "KIND=VALUE".

        Raises:
            UnknownKindError: Unknown kind
            ValueError: Value rejected by the builder
        """
        kind, value = split_kind_spec(spec)
        return self.resolve_condition(kind).build(value)

    # =========================================================================
    # Action Builders
    # =========================================================================

    def register_action(
        self,
        kind: ActionType,
        factory: Callable[[], ActionBuilder],
    ) -> None:
        """Register an action builder factory."""
        self._actions[kind] = factory
        self._action_instances.pop(kind, None)
        logger.debug(f"Registered action builder: {kind.display_name}")

    def get_action_builder(self, kind: ActionType) -> ActionBuilder | None:
        """Get an action builder instance (lazy-loaded)."""
        if kind in self._action_instances:
            return self._action_instances[kind]

        if kind not in self._actions:
            return None

        try:
            instance = self._actions[kind]()
            self._action_instances[kind] = instance
            return instance
        except Exception as e:
            logger.error(f"Failed to instantiate action builder {kind.name}: {e}")
            return None

    def list_actions(self) -> list[ActionType]:
        """Action kinds with a registered builder."""
        return list(self._actions.keys())

    def resolve_action(self, name: str) -> ActionBuilder:
        """
        Find an action builder by alias or enum name (case-insensitive).

        Raises:
            UnknownKindError: No builder matches
        """
        key = name.strip().lower()
        for kind in self._actions:
            builder = self.get_action_builder(kind)
            if builder is None:
                continue
            if key == kind.name.lower() or key in builder.aliases:
                return builder
        raise UnknownKindError("action kind", name)

    def build_action(self, spec: str) -> Action:
        """
        Build an action from "KIND" or "KIND=VALUE".

        Raises:
            UnknownKindError: Unknown kind
            ValueError: Value rejected by the builder
        """
        kind, value = split_kind_spec(spec)
        return self.resolve_action(kind).build(value)

    # =========================================================================
    # Descriptions
    # =========================================================================

    def describe_condition(self, condition: Condition) -> str:
        """Describe with the kind's builder, falling back to the generic form."""
        builder = self.get_condition_builder(condition.type)
        if builder is None:
            return condition.describe()
        return builder.describe(condition)

    def describe_action(self, action: Action) -> str:
        builder = self.get_action_builder(action.type)
        if builder is None:
            return action.describe()
        return builder.describe(action)

    def get_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        return {
            "conditions": {
                "registered": len(self._conditions),
                "instantiated": len(self._condition_instances),
            },
            "actions": {
                "registered": len(self._actions),
                "instantiated": len(self._action_instances),
            },
        }


# =============================================================================
# Global Registry
# =============================================================================

_global_registry: BuilderRegistry | None = None


def get_builder_registry() -> BuilderRegistry:
    """
    Get the global builder registry.

    Returns a lazily-initialized registry with built-in builders registered.
    """
    global _global_registry
    if _global_registry is None:
        _global_registry = BuilderRegistry()
        _register_builtin_builders(_global_registry)
    return _global_registry


def reset_registry() -> None:
    """Reset the global registry (for testing)."""
    global _global_registry
    _global_registry = None


def _register_builtin_builders(registry: BuilderRegistry) -> None:
    """
    Register all built-in builders.

    Called once when the global registry is created. LOCATION has no builder.
    """
    from .builders import (
        AppConditionBuilder,
        BlockActionBuilder,
        ContentConditionBuilder,
        CountConditionBuilder,
        DayConditionBuilder,
        DelayActionBuilder,
        DeviceStateConditionBuilder,
        ElapsedConditionBuilder,
        LogEventActionBuilder,
        MasterSwitchActionBuilder,
        ModifyTextActionBuilder,
        PrivateActionBuilder,
        TimeConditionBuilder,
    )

    registry.register_condition(ConditionType.TIME_OF_DAY, lambda: TimeConditionBuilder())
    registry.register_condition(ConditionType.DAY_OF_WEEK, lambda: DayConditionBuilder())
    registry.register_condition(ConditionType.APP_PACKAGE, lambda: AppConditionBuilder())
    registry.register_condition(
        ConditionType.NOTIFICATION_CONTENT, lambda: ContentConditionBuilder()
    )
    registry.register_condition(ConditionType.NOTIFICATION_COUNT, lambda: CountConditionBuilder())
    registry.register_condition(
        ConditionType.LAST_NOTIFICATION_TIME, lambda: ElapsedConditionBuilder()
    )
    registry.register_condition(ConditionType.DEVICE_STATE, lambda: DeviceStateConditionBuilder())

    registry.register_action(ActionType.BLOCK_NOTIFICATION, lambda: BlockActionBuilder())
    registry.register_action(ActionType.MAKE_PRIVATE, lambda: PrivateActionBuilder())
    registry.register_action(ActionType.SET_DELAY, lambda: DelayActionBuilder())
    registry.register_action(ActionType.MODIFY_TEXT, lambda: ModifyTextActionBuilder())
    registry.register_action(
        ActionType.DISABLE_MASTER_SWITCH,
        lambda: MasterSwitchActionBuilder(ActionType.DISABLE_MASTER_SWITCH),
    )
    registry.register_action(
        ActionType.ENABLE_MASTER_SWITCH,
        lambda: MasterSwitchActionBuilder(ActionType.ENABLE_MASTER_SWITCH),
    )
    registry.register_action(ActionType.LOG_EVENT, lambda: LogEventActionBuilder())
