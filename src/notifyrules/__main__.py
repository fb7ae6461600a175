#!/usr/bin/env python3
"""
notifyrules CLI Entry Point

Provides command-line interface for managing and dry-running
conditional notification rules.
Run with: python -m notifyrules <command> [args]
"""

import argparse
import json
import sys
from typing import Optional

from .core import get_logger, get_utc_timestamp


def output_json(data: dict, indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent, ensure_ascii=False))


def output_error(message: str, exit_code: int = 1, **kwargs) -> None:
    """Print error JSON and exit."""
    error_data = {
        "error": kwargs.pop("error_type", "error"),
        "message": message,
        "query_timestamp": get_utc_timestamp(),
    }
    error_data.update(kwargs)
    output_json(error_data)
    sys.exit(exit_code)


# =============================================================================
# Built-in Commands
# =============================================================================


def cmd_help(args: argparse.Namespace) -> dict:
    """Show help message."""
    help_text = """
Conditional Notification Rules
-------------------------------------------------------------------

Rule Commands:
  rules list                 List rules, highest priority first
  rules show <id>            Show a rule with validation findings
  rules add [opts]           Add a rule from shorthand
                             --name, --priority N, --description
                             --if KIND=VALUE (repeatable)
                             --then KIND[=VALUE] (repeatable)
  rules remove <id>          Remove a rule
  rules enable <id>          Enable a rule
  rules disable <id>         Disable a rule

Templates:
  rules templates            List quick templates
  rules add-template <key>   Add a rule from a template
  rules examples             Add example rules (empty rule set only)

Checking:
  rules validate             Validate all rules
  rules kinds                List condition/action kinds and aliases
  rules evaluate [opts]      Dry-run a notification
                             --package, --app, --text, --count N
                             --since-last SECONDS, --screen-on, --charging
                             --explain

Import/Export:
  rules export [-o FILE]     Export the rule document
  rules import <file>        Import a rule document (--merge to merge by id)

Environment:
  NOTIFYRULES_INSTANCE_ROOT  Data root (rules in userdata/conditional_rules.json)
  NOTIFYRULES_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR, CRITICAL
"""
    print(help_text)
    return {}


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="notifyrules",
        description="Conditional notification filtering rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    help_parser = subparsers.add_parser("help", help="Show help message")
    help_parser.set_defaults(func=cmd_help)

    from .commands import rules

    rules.register_parsers(subparsers)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Attach the shared handler to the package logger
    get_logger("notifyrules")

    # Default to help if no command
    if not args.command:
        cmd_help(args)
        return 0

    # Check if command has a handler function
    if not hasattr(args, "func"):
        output_error(
            f"Missing subcommand for: {args.command}",
            error_type="unknown_command",
            hint="Run 'notifyrules help' for usage",
        )

    # Execute command
    try:
        result = args.func(args)

        # Output result if it's a dict (JSON response)
        if isinstance(result, dict) and result:
            output_json(result)

            # Return non-zero exit code if result contains error
            if "error" in result:
                return 1

        return 0

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        output_error(str(e), error_type="command_error", command=args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
