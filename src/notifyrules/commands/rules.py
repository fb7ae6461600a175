"""
Rule Management Commands

Manage conditional notification rules: list, add, toggle and remove rules,
add quick templates, validate the rule set, and dry-run a notification
through the engine.
"""

import argparse
import json
from pathlib import Path
from typing import Any

from ..core import get_settings, get_utc_timestamp
from ..core.formatters import current_millis
from ..rules import (
    ConditionEvaluator,
    NotificationContext,
    Rule,
    RuleEvaluator,
    RulesError,
    RuleStore,
    StaticDeviceState,
    TemplateLoader,
    create_example_rules,
    get_builder_registry,
    validate_rule,
    validate_rules,
)
from ..rules.sinks import LogIntentSink


def _open_store() -> RuleStore:
    """Rule store at the configured path."""
    return RuleStore.from_settings(get_settings())


def _template_loader() -> TemplateLoader:
    return TemplateLoader(get_settings().effective_template_dir)


def _error(query_ts: str, error: str, message: str, **extra: Any) -> dict[str, Any]:
    return {
        "query_timestamp": query_ts,
        "status": "error",
        "error": error,
        "message": message,
        **extra,
    }


def _rule_summary(rule: Rule) -> dict[str, Any]:
    """Compact rule view with plain-words conditions and actions."""
    registry = get_builder_registry()
    return {
        "id": rule.id,
        "name": rule.name,
        "enabled": rule.enabled,
        "priority": rule.priority,
        "conditions": [registry.describe_condition(c) for c in rule.conditions],
        "actions": [registry.describe_action(a) for a in rule.actions],
    }


# =============================================================================
# List Command
# =============================================================================


def cmd_rules_list(args: argparse.Namespace) -> dict[str, Any]:
    """
    List all rules, highest priority first.

    Args:
        args: Parsed arguments

    Returns:
        Result dict with rule summaries
    """
    query_ts = get_utc_timestamp()
    store = _open_store()

    rules = sorted(store.get_all_rules(), key=lambda r: r.priority, reverse=True)

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "rules_path": str(get_settings().effective_rules_path),
        "count": len(rules),
        "enabled_count": sum(1 for r in rules if r.enabled),
        "rules": [_rule_summary(r) for r in rules],
    }


# =============================================================================
# Show Command
# =============================================================================


def cmd_rules_show(args: argparse.Namespace) -> dict[str, Any]:
    """
    Show a rule in full, with validation findings.

    Args:
        args: Parsed arguments with rule_id

    Returns:
        Result dict with rule details
    """
    query_ts = get_utc_timestamp()
    rule = _open_store().get_rule_by_id(args.rule_id)
    if rule is None:
        return _error(query_ts, "not_found", f"Rule not found: {args.rule_id}")

    validation = validate_rule(rule)

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "rule": rule.to_dict(),
        "summary": _rule_summary(rule),
        "validation": {
            "valid": validation.valid,
            "errors": [e.to_dict() for e in validation.errors],
            "warnings": [w.to_dict() for w in validation.warnings],
        },
    }


# =============================================================================
# Add / Remove Commands
# =============================================================================


def cmd_rules_add(args: argparse.Namespace) -> dict[str, Any]:
    """
    Create a rule from shorthand conditions and actions.

    Conditions are KIND=VALUE (e.g. time=22:00-06:00, app=~facebook);
    actions are KIND or KIND=VALUE (e.g. block, delay=30).

    Args:
        args: Parsed arguments with name, priority, conditions, actions

    Returns:
        Result dict with the new rule
    """
    query_ts = get_utc_timestamp()
    registry = get_builder_registry()

    try:
        conditions = [registry.build_condition(spec) for spec in (args.conditions or [])]
        actions = [registry.build_action(spec) for spec in (args.actions or [])]
    except KeyError as e:
        return _error(
            query_ts,
            "unknown_kind",
            str(e),
            hint="Run 'notifyrules rules kinds' for available kinds",
        )
    except ValueError as e:
        return _error(query_ts, "invalid_value", str(e))

    if not actions:
        return _error(query_ts, "no_actions", "A rule needs at least one --then action")

    rule = Rule(
        name=args.name,
        description=args.description or "",
        enabled=not args.disabled,
        priority=args.priority,
        conditions=conditions,
        actions=actions,
    )
    _open_store().add_rule(rule)

    validation = validate_rule(rule)

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Added rule '{rule.name}'",
        "rule": _rule_summary(rule),
        "warnings": validation.warning_messages,
        "errors": validation.error_messages,
    }


def cmd_rules_remove(args: argparse.Namespace) -> dict[str, Any]:
    """Remove a rule by id."""
    query_ts = get_utc_timestamp()

    if not _open_store().remove_rule(args.rule_id):
        return _error(query_ts, "not_found", f"Rule not found: {args.rule_id}")

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Removed rule {args.rule_id}",
    }


# =============================================================================
# Enable / Disable Commands
# =============================================================================


def cmd_rules_enable(args: argparse.Namespace) -> dict[str, Any]:
    """Enable a rule."""
    return _set_rule_enabled(args.rule_id, True)


def cmd_rules_disable(args: argparse.Namespace) -> dict[str, Any]:
    """Disable a rule."""
    return _set_rule_enabled(args.rule_id, False)


def _set_rule_enabled(rule_id: str, enabled: bool) -> dict[str, Any]:
    """
    Set a rule's enabled flag.

    Args:
        rule_id: Rule id
        enabled: New state

    Returns:
        Result dict
    """
    query_ts = get_utc_timestamp()
    store = _open_store()

    rule = store.get_rule_by_id(rule_id)
    if rule is None:
        return _error(query_ts, "not_found", f"Rule not found: {rule_id}")

    state = "enabled" if enabled else "disabled"
    if rule.enabled == enabled:
        return {
            "query_timestamp": query_ts,
            "status": "ok",
            "message": f"Rule '{rule.name}' is already {state}",
            "changed": False,
        }

    updated = rule.copy()
    updated.enabled = enabled
    store.update_rule(updated)

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Rule '{rule.name}' {state}",
        "changed": True,
    }


# =============================================================================
# Template Commands
# =============================================================================


def cmd_rules_templates(args: argparse.Namespace) -> dict[str, Any]:
    """List quick templates (built-in and user-defined)."""
    query_ts = get_utc_timestamp()
    templates = _template_loader().list_templates()

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "templates": [t.to_dict() for t in templates],
        "usage": "notifyrules rules add-template <key>",
    }


def cmd_rules_add_template(args: argparse.Namespace) -> dict[str, Any]:
    """Add a rule from a quick template."""
    query_ts = get_utc_timestamp()
    loader = _template_loader()

    try:
        rule = loader.create_rule(args.key)
    except KeyError:
        return _error(
            query_ts,
            "not_found",
            f"Unknown template: {args.key}",
            available=[t.key for t in loader.list_templates()],
        )

    _open_store().add_rule(rule)

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Added rule '{rule.name}' from template {args.key}",
        "rule": _rule_summary(rule),
        "warnings": validate_rule(rule).warning_messages,
    }


def cmd_rules_examples(args: argparse.Namespace) -> dict[str, Any]:
    """Add the example rules to an empty rule set."""
    query_ts = get_utc_timestamp()
    added = create_example_rules(_open_store())

    if not added:
        return {
            "query_timestamp": query_ts,
            "status": "ok",
            "message": "Rules already exist; example rules not added",
            "added": 0,
        }

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Added {len(added)} example rules",
        "added": len(added),
        "rules": [_rule_summary(r) for r in added],
    }


# =============================================================================
# Validate / Kinds Commands
# =============================================================================


def cmd_rules_validate(args: argparse.Namespace) -> dict[str, Any]:
    """Validate every stored rule."""
    query_ts = get_utc_timestamp()
    rules = _open_store().get_all_rules()
    result = validate_rules(rules)

    return {
        "query_timestamp": query_ts,
        "status": "ok" if result.valid else "invalid",
        "valid": result.valid,
        "rule_count": len(rules),
        "errors": [e.to_dict() for e in result.errors],
        "warnings": [w.to_dict() for w in result.warnings],
    }


def cmd_rules_kinds(args: argparse.Namespace) -> dict[str, Any]:
    """List condition and action kinds with their shorthand aliases."""
    query_ts = get_utc_timestamp()
    registry = get_builder_registry()

    conditions = []
    for kind in registry.list_conditions():
        builder = registry.get_condition_builder(kind)
        if builder is None:
            continue
        conditions.append(
            {
                "kind": kind.name,
                "display_name": builder.display_name,
                "description": builder.description,
                "aliases": list(builder.aliases),
            }
        )

    actions = []
    for kind in registry.list_actions():
        builder = registry.get_action_builder(kind)
        if builder is None:
            continue
        actions.append(
            {
                "kind": kind.name,
                "display_name": builder.display_name,
                "description": builder.description,
                "aliases": list(builder.aliases),
            }
        )

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "conditions": conditions,
        "actions": actions,
    }


# =============================================================================
# Evaluate Command
# =============================================================================


def cmd_rules_evaluate(args: argparse.Namespace) -> dict[str, Any]:
    """
    Dry-run a notification through the stored rules.

    Args:
        args: Parsed arguments with app, package, text, count, since_last,
              screen_on, charging, explain

    Returns:
        Result dict with the evaluation result (and per-rule trace)
    """
    query_ts = get_utc_timestamp()
    rules = _open_store().get_all_rules()

    now = current_millis()
    last_time = 0
    if args.since_last is not None:
        last_time = now - args.since_last * 1000

    context = NotificationContext(
        app_name=args.app or args.package,
        package_name=args.package,
        notification_text=args.text or "",
        timestamp=now,
        recent_notification_count=args.count,
        last_notification_time=last_time,
    )

    evaluator = RuleEvaluator(
        ConditionEvaluator(
            device_state=StaticDeviceState(screen_on=args.screen_on, charging=args.charging)
        ),
        sink=LogIntentSink(),
    )
    result = evaluator.apply_rules(rules, context)

    output: dict[str, Any] = {
        "query_timestamp": query_ts,
        "status": "ok",
        "context": context.to_dict(),
        "result": result.to_dict(),
    }
    if args.explain:
        output["trace"] = [t.to_dict() for t in evaluator.explain(rules, context)]
    return output


# =============================================================================
# Export / Import Commands
# =============================================================================


def cmd_rules_export(args: argparse.Namespace) -> dict[str, Any]:
    """Export rules as a rule document, to a file or inline."""
    query_ts = get_utc_timestamp()
    store = _open_store()
    document = store.export_json()

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(document, encoding="utf-8")
        return {
            "query_timestamp": query_ts,
            "status": "ok",
            "message": f"Exported {len(store)} rules",
            "output": str(output_path),
        }

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "document": json.loads(document),
    }


def cmd_rules_import(args: argparse.Namespace) -> dict[str, Any]:
    """Import rules from a rule document, replacing or merging."""
    query_ts = get_utc_timestamp()
    input_path = Path(args.file)

    if not input_path.exists():
        return _error(query_ts, "not_found", f"File not found: {input_path}")

    try:
        text = input_path.read_text(encoding="utf-8")
        count = _open_store().import_json(text, replace=not args.merge)
    except RulesError as e:
        return _error(query_ts, "invalid", str(e))

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "message": f"Imported {count} rules ({'merged' if args.merge else 'replaced'})",
        "imported": count,
    }


# =============================================================================
# Parser Registration
# =============================================================================


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register rule command parsers."""

    rules_parser = subparsers.add_parser(
        "rules",
        help="Manage conditional notification rules",
        description="Manage conditional notification rules. Rules combine AND-ed "
        "conditions with actions and are applied in priority order.",
    )

    rules_subparsers = rules_parser.add_subparsers(
        dest="rules_command",
        help="Rule management commands",
    )

    # rules list
    list_parser = rules_subparsers.add_parser("list", help="List all rules")
    list_parser.set_defaults(func=cmd_rules_list)

    # rules show
    show_parser = rules_subparsers.add_parser("show", help="Show rule details")
    show_parser.add_argument("rule_id", help="Rule id")
    show_parser.set_defaults(func=cmd_rules_show)

    # rules add
    add_parser = rules_subparsers.add_parser(
        "add",
        help="Add a rule",
        description="Add a rule from shorthand. Example: rules add --name 'Night' "
        "--priority 8 --if time=22:00-06:00 --then private --then delay=30",
    )
    add_parser.add_argument("--name", required=True, help="Rule name")
    add_parser.add_argument("--description", help="Rule description")
    add_parser.add_argument(
        "--priority",
        type=int,
        default=0,
        help="Priority, higher applies first (convention 1-20)",
    )
    add_parser.add_argument(
        "--if",
        dest="conditions",
        action="append",
        metavar="KIND=VALUE",
        help="Condition (repeatable, all must match)",
    )
    add_parser.add_argument(
        "--then",
        dest="actions",
        action="append",
        metavar="KIND[=VALUE]",
        help="Action (repeatable)",
    )
    add_parser.add_argument("--disabled", action="store_true", help="Create the rule disabled")
    add_parser.set_defaults(func=cmd_rules_add)

    # rules remove
    remove_parser = rules_subparsers.add_parser("remove", help="Remove a rule")
    remove_parser.add_argument("rule_id", help="Rule id")
    remove_parser.set_defaults(func=cmd_rules_remove)

    # rules enable / disable
    enable_parser = rules_subparsers.add_parser("enable", help="Enable a rule")
    enable_parser.add_argument("rule_id", help="Rule id")
    enable_parser.set_defaults(func=cmd_rules_enable)

    disable_parser = rules_subparsers.add_parser("disable", help="Disable a rule")
    disable_parser.add_argument("rule_id", help="Rule id")
    disable_parser.set_defaults(func=cmd_rules_disable)

    # rules templates / add-template / examples
    templates_parser = rules_subparsers.add_parser("templates", help="List quick templates")
    templates_parser.set_defaults(func=cmd_rules_templates)

    add_template_parser = rules_subparsers.add_parser(
        "add-template", help="Add a rule from a quick template"
    )
    add_template_parser.add_argument("key", help="Template key (see 'rules templates')")
    add_template_parser.set_defaults(func=cmd_rules_add_template)

    examples_parser = rules_subparsers.add_parser(
        "examples", help="Add example rules when no rules exist"
    )
    examples_parser.set_defaults(func=cmd_rules_examples)

    # rules validate / kinds
    validate_parser = rules_subparsers.add_parser("validate", help="Validate all rules")
    validate_parser.set_defaults(func=cmd_rules_validate)

    kinds_parser = rules_subparsers.add_parser(
        "kinds", help="List condition/action kinds and shorthand aliases"
    )
    kinds_parser.set_defaults(func=cmd_rules_kinds)

    # rules evaluate
    evaluate_parser = rules_subparsers.add_parser(
        "evaluate", help="Dry-run a notification through the rules"
    )
    evaluate_parser.add_argument("--package", required=True, help="App package name")
    evaluate_parser.add_argument("--app", help="App display name (default: package)")
    evaluate_parser.add_argument("--text", help="Notification text")
    evaluate_parser.add_argument(
        "--count", type=int, default=0, help="Recent notification count"
    )
    evaluate_parser.add_argument(
        "--since-last",
        dest="since_last",
        type=int,
        help="Seconds since the previous notification",
    )
    evaluate_parser.add_argument(
        "--screen-on", dest="screen_on", action="store_true", help="Screen is on"
    )
    evaluate_parser.add_argument("--charging", action="store_true", help="Device is charging")
    evaluate_parser.add_argument(
        "--explain", action="store_true", help="Include a per-rule trace"
    )
    evaluate_parser.set_defaults(func=cmd_rules_evaluate)

    # rules export / import
    export_parser = rules_subparsers.add_parser("export", help="Export rules as JSON")
    export_parser.add_argument("--output", "-o", help="Write to file instead of stdout")
    export_parser.set_defaults(func=cmd_rules_export)

    import_parser = rules_subparsers.add_parser("import", help="Import rules from JSON")
    import_parser.add_argument("file", help="Rule document to import")
    import_parser.add_argument(
        "--merge",
        action="store_true",
        help="Merge by id instead of replacing all rules",
    )
    import_parser.set_defaults(func=cmd_rules_import)
