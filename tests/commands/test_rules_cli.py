"""
Tests for rule management CLI commands.

Commands run against the per-test instance root set up in conftest, so
every test starts with an empty rule file.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import pytest


def _rules_file(tmp_path: Path) -> Path:
    return tmp_path / "userdata" / "conditional_rules.json"


def _add_args(**overrides) -> argparse.Namespace:
    values = {
        "name": "Night",
        "description": None,
        "priority": 8,
        "conditions": ["time=22:00-06:00"],
        "actions": ["private", "delay=30"],
        "disabled": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _evaluate_args(**overrides) -> argparse.Namespace:
    values = {
        "package": "com.example.chat",
        "app": None,
        "text": None,
        "count": 0,
        "since_last": None,
        "screen_on": False,
        "charging": False,
        "explain": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _seed(*specs: tuple[str, int, list[str], list[str]]) -> list[str]:
    """Add rules through the CLI; returns their ids."""
    from notifyrules.commands.rules import cmd_rules_add

    ids = []
    for name, priority, conditions, actions in specs:
        result = cmd_rules_add(
            _add_args(name=name, priority=priority, conditions=conditions, actions=actions)
        )
        assert result["status"] == "ok"
        ids.append(result["rule"]["id"])
    return ids


# =============================================================================
# List / Show
# =============================================================================


class TestCmdRulesList:
    """Test cmd_rules_list."""

    def test_empty(self, tmp_path: Path):
        """No rules file lists nothing."""
        from notifyrules.commands.rules import cmd_rules_list

        result = cmd_rules_list(argparse.Namespace())

        assert result["status"] == "ok"
        assert result["count"] == 0
        assert result["rules_path"] == str(_rules_file(tmp_path))

    def test_sorted_by_priority(self):
        """Rules are listed highest priority first with descriptions."""
        from notifyrules.commands.rules import cmd_rules_list

        _seed(
            ("low", 2, [], ["block"]),
            ("high", 9, ["app=~chat"], ["private"]),
        )

        result = cmd_rules_list(argparse.Namespace())

        assert [r["name"] for r in result["rules"]] == ["high", "low"]
        assert result["rules"][0]["conditions"] == ["App Package contains chat"]
        assert result["enabled_count"] == 2


class TestCmdRulesShow:
    """Test cmd_rules_show."""

    def test_show(self):
        """Shows the persisted form plus validation."""
        from notifyrules.commands.rules import cmd_rules_show

        (rule_id,) = _seed(("Night", 8, ["time=22:00-06:00"], ["delay=30"]))

        result = cmd_rules_show(argparse.Namespace(rule_id=rule_id))

        assert result["status"] == "ok"
        assert result["rule"]["conditions"][0]["operator"] == "IN_RANGE"
        assert result["summary"]["conditions"] == ["between 22:00 and 06:00"]
        assert result["validation"]["valid"] is True

    def test_not_found(self):
        """Unknown ids are an error."""
        from notifyrules.commands.rules import cmd_rules_show

        result = cmd_rules_show(argparse.Namespace(rule_id="missing"))

        assert result["status"] == "error"
        assert result["error"] == "not_found"


# =============================================================================
# Add / Remove / Enable / Disable
# =============================================================================


class TestCmdRulesAdd:
    """Test cmd_rules_add."""

    def test_add_persists(self, tmp_path: Path):
        """The new rule is written to the rules file."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args())

        assert result["status"] == "ok"
        assert result["rule"]["actions"] == ["Make Private: true", "delay 30s"]
        data = json.loads(_rules_file(tmp_path).read_text(encoding="utf-8"))
        assert data["rules"][0]["name"] == "Night"
        assert data["rules"][0]["priority"] == 8

    def test_add_disabled(self):
        """--disabled creates a disabled rule."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args(disabled=True))

        assert result["rule"]["enabled"] is False

    def test_unknown_kind(self):
        """Unknown condition kinds are reported with a hint."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args(conditions=["weather=rain"]))

        assert result["error"] == "unknown_kind"
        assert "hint" in result

    def test_invalid_value(self):
        """Builder errors are reported as invalid_value."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args(actions=["delay=soon"]))

        assert result["error"] == "invalid_value"

    def test_requires_action(self, tmp_path: Path):
        """A rule without actions is refused and nothing is written."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args(actions=None))

        assert result["error"] == "no_actions"
        assert not _rules_file(tmp_path).exists()

    def test_warnings_reported(self):
        """Validation warnings come back with the new rule."""
        from notifyrules.commands.rules import cmd_rules_add

        result = cmd_rules_add(_add_args(priority=0))

        assert result["status"] == "ok"
        assert any("Priority 0" in w for w in result["warnings"])


class TestCmdRulesRemove:
    """Test cmd_rules_remove."""

    def test_remove(self):
        """Removing an existing rule succeeds."""
        from notifyrules.commands.rules import cmd_rules_list, cmd_rules_remove

        (rule_id,) = _seed(("x", 5, [], ["block"]))

        assert cmd_rules_remove(argparse.Namespace(rule_id=rule_id))["status"] == "ok"
        assert cmd_rules_list(argparse.Namespace())["count"] == 0

    def test_remove_missing(self):
        """Removing an unknown id is an error."""
        from notifyrules.commands.rules import cmd_rules_remove

        assert cmd_rules_remove(argparse.Namespace(rule_id="nope"))["error"] == "not_found"


class TestCmdRulesToggle:
    """Test cmd_rules_enable / cmd_rules_disable."""

    def test_disable_then_enable(self):
        """Toggling persists and reports changes."""
        from notifyrules.commands.rules import (
            cmd_rules_disable,
            cmd_rules_enable,
            cmd_rules_show,
        )

        (rule_id,) = _seed(("x", 5, [], ["block"]))
        args = argparse.Namespace(rule_id=rule_id)

        assert cmd_rules_disable(args)["changed"] is True
        assert cmd_rules_show(args)["rule"]["enabled"] is False
        assert cmd_rules_disable(args)["changed"] is False
        assert cmd_rules_enable(args)["changed"] is True
        assert cmd_rules_show(args)["rule"]["enabled"] is True

    def test_toggle_missing(self):
        """Unknown ids are an error."""
        from notifyrules.commands.rules import cmd_rules_enable

        assert cmd_rules_enable(argparse.Namespace(rule_id="nope"))["error"] == "not_found"


# =============================================================================
# Templates / Examples
# =============================================================================


class TestCmdRulesTemplates:
    """Test template commands."""

    def test_list_templates(self):
        """Built-in templates are listed."""
        from notifyrules.commands.rules import cmd_rules_templates

        result = cmd_rules_templates(argparse.Namespace())

        assert {t["key"] for t in result["templates"]} == {
            "night_mode",
            "screen_on",
            "work_hours",
            "focus_mode",
            "quiet_time",
        }

    def test_user_template_listed(self, tmp_path: Path):
        """Templates under userdata/templates are picked up."""
        from notifyrules.commands.rules import cmd_rules_add_template, cmd_rules_templates

        template_dir = tmp_path / "userdata" / "templates"
        template_dir.mkdir(parents=True)
        (template_dir / "otp.yaml").write_text(
            "name: OTP private\n"
            "priority: 7\n"
            "conditions:\n"
            "  - {type: NOTIFICATION_CONTENT, operator: MATCHES_PATTERN, value: 'code [NUMBER]'}\n"
            "actions:\n"
            "  - {type: MAKE_PRIVATE}\n",
            encoding="utf-8",
        )

        keys = [t["key"] for t in cmd_rules_templates(argparse.Namespace())["templates"]]
        assert "otp" in keys

        result = cmd_rules_add_template(argparse.Namespace(key="otp"))
        assert result["status"] == "ok"
        assert result["rule"]["name"] == "OTP private"

    def test_add_template(self):
        """Adding a built-in template stores a template_ rule."""
        from notifyrules.commands.rules import cmd_rules_add_template

        result = cmd_rules_add_template(argparse.Namespace(key="work_hours"))

        assert result["status"] == "ok"
        assert result["rule"]["id"].startswith("template_work_hours_")
        assert result["warnings"]

    def test_add_unknown_template(self):
        """Unknown template keys list what is available."""
        from notifyrules.commands.rules import cmd_rules_add_template

        result = cmd_rules_add_template(argparse.Namespace(key="nope"))

        assert result["error"] == "not_found"
        assert "quiet_time" in result["available"]

    def test_examples_only_once(self):
        """Examples are added to an empty rule set only."""
        from notifyrules.commands.rules import cmd_rules_examples

        assert cmd_rules_examples(argparse.Namespace())["added"] == 2
        assert cmd_rules_examples(argparse.Namespace())["added"] == 0


# =============================================================================
# Validate / Kinds
# =============================================================================


class TestCmdRulesValidate:
    """Test cmd_rules_validate."""

    def test_valid(self):
        """A clean rule set validates."""
        from notifyrules.commands.rules import cmd_rules_validate

        _seed(("x", 5, ["count=>3"], ["block"]))

        result = cmd_rules_validate(argparse.Namespace())

        assert result["status"] == "ok"
        assert result["rule_count"] == 1

    def test_invalid(self, tmp_path: Path):
        """A hand-edited bad value is reported as an error."""
        from notifyrules.commands.rules import cmd_rules_validate

        path = _rules_file(tmp_path)
        path.parent.mkdir(parents=True)
        path.write_text(
            json.dumps(
                {
                    "version": "1.0",
                    "rules": [
                        {
                            "id": "r1",
                            "name": "bad",
                            "priority": 5,
                            "conditions": [
                                {"type": "NOTIFICATION_COUNT", "operator": "EQUALS", "value": "x"}
                            ],
                            "actions": [{"type": "BLOCK_NOTIFICATION"}],
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )

        result = cmd_rules_validate(argparse.Namespace())

        assert result["status"] == "invalid"
        assert result["errors"][0]["code"] == "INVALID_NUMBER"
        assert result["errors"][0]["field"] == "r1.conditions[0].value"


class TestCmdRulesKinds:
    """Test cmd_rules_kinds."""

    def test_kinds(self):
        """Condition and action kinds come with aliases."""
        from notifyrules.commands.rules import cmd_rules_kinds

        result = cmd_rules_kinds(argparse.Namespace())

        conditions = {c["kind"]: c for c in result["conditions"]}
        assert "time" in conditions["TIME_OF_DAY"]["aliases"]
        assert "LOCATION" not in conditions
        assert any(a["kind"] == "SET_DELAY" for a in result["actions"])


# =============================================================================
# Evaluate
# =============================================================================


class TestCmdRulesEvaluate:
    """Test cmd_rules_evaluate."""

    def test_no_rules(self):
        """An empty rule set changes nothing."""
        from notifyrules.commands.rules import cmd_rules_evaluate

        result = cmd_rules_evaluate(_evaluate_args())

        assert result["status"] == "ok"
        assert result["result"]["has_changes"] is False
        assert result["context"]["app_name"] == "com.example.chat"

    def test_priority_overwrite(self):
        """The lower-priority delay wins."""
        from notifyrules.commands.rules import cmd_rules_evaluate

        _seed(
            ("high", 10, [], ["delay=3"]),
            ("low", 5, [], ["delay=7"]),
        )

        result = cmd_rules_evaluate(_evaluate_args())

        assert result["result"]["delay_seconds"] == 7
        assert result["result"]["applied_rules"] == ["high", "low"]

    def test_device_and_history_flags(self):
        """Screen, count and elapsed-time flags reach the conditions."""
        from notifyrules.commands.rules import cmd_rules_evaluate

        _seed(("busy", 5, ["device=on", "count=>3", "since=<10"], ["block"]))

        quiet = cmd_rules_evaluate(_evaluate_args())
        busy = cmd_rules_evaluate(_evaluate_args(screen_on=True, count=5, since_last=2))

        assert quiet["result"]["should_block"] is False
        assert busy["result"]["should_block"] is True

    def test_explain(self):
        """--explain adds a per-rule trace."""
        from notifyrules.commands.rules import cmd_rules_evaluate

        _seed(("text", 5, ["content=otp"], ["private"]))

        result = cmd_rules_evaluate(_evaluate_args(text="Your code", explain=True))

        assert result["trace"][0]["status"] == "failed"
        assert result["trace"][0]["failed_condition"] == 0

    def test_intents_in_result(self):
        """Intent actions are reported on the result."""
        from notifyrules.commands.rules import cmd_rules_evaluate

        _seed(("log", 5, [], ["log=seen it"]))

        result = cmd_rules_evaluate(_evaluate_args(app="Chat"))

        intent = result["result"]["intents"][0]
        assert intent["action_type"] == "LOG_EVENT"
        assert intent["app_name"] == "Chat"


# =============================================================================
# Export / Import
# =============================================================================


class TestCmdRulesExportImport:
    """Test export and import commands."""

    def test_export_inline(self):
        """Without --output the document is returned inline."""
        from notifyrules.commands.rules import cmd_rules_export

        _seed(("x", 5, [], ["block"]))

        result = cmd_rules_export(argparse.Namespace(output=None))

        assert result["document"]["version"] == "1.0"
        assert len(result["document"]["rules"]) == 1

    def test_export_to_file_and_import(self, tmp_path: Path):
        """An exported file imports back, replacing or merging."""
        from notifyrules.commands.rules import (
            cmd_rules_export,
            cmd_rules_import,
            cmd_rules_list,
            cmd_rules_remove,
        )

        (rule_id,) = _seed(("x", 5, [], ["block"]))
        out = tmp_path / "backup" / "rules.json"

        assert cmd_rules_export(argparse.Namespace(output=str(out)))["status"] == "ok"
        cmd_rules_remove(argparse.Namespace(rule_id=rule_id))

        result = cmd_rules_import(argparse.Namespace(file=str(out), merge=False))

        assert result["imported"] == 1
        assert cmd_rules_list(argparse.Namespace())["rules"][0]["id"] == rule_id

    def test_import_missing_file(self, tmp_path: Path):
        """A missing file is not_found."""
        from notifyrules.commands.rules import cmd_rules_import

        result = cmd_rules_import(argparse.Namespace(file=str(tmp_path / "no.json"), merge=False))

        assert result["error"] == "not_found"

    def test_import_invalid_keeps_rules(self, tmp_path: Path):
        """A bad document is reported and existing rules stay."""
        from notifyrules.commands.rules import cmd_rules_import, cmd_rules_list

        _seed(("keep", 5, [], ["block"]))
        bad = tmp_path / "bad.json"
        bad.write_text('{"version": "2.0", "rules": []}', encoding="utf-8")

        result = cmd_rules_import(argparse.Namespace(file=str(bad), merge=True))

        assert result["error"] == "invalid"
        assert cmd_rules_list(argparse.Namespace())["count"] == 1


# =============================================================================
# Entry Point
# =============================================================================


class TestMain:
    """Test the CLI entry point."""

    def test_add_and_list(self, capsys):
        """Commands print JSON and exit 0."""
        from notifyrules.__main__ import main

        code = main(
            ["rules", "add", "--name", "Quiet", "--priority", "9", "--if", "time=23:00-07:00", "--then", "block"]
        )
        assert code == 0
        added = json.loads(capsys.readouterr().out)
        assert added["rule"]["name"] == "Quiet"

        assert main(["rules", "list"]) == 0
        listed = json.loads(capsys.readouterr().out)
        assert listed["count"] == 1

    def test_error_exit_code(self, capsys):
        """Error results exit 1."""
        from notifyrules.__main__ import main

        assert main(["rules", "show", "missing"]) == 1
        assert json.loads(capsys.readouterr().out)["error"] == "not_found"

    def test_missing_subcommand(self, capsys):
        """A group without a subcommand exits with an error."""
        from notifyrules.__main__ import main

        with pytest.raises(SystemExit) as exc_info:
            main(["rules"])

        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "unknown_command"

    def test_no_command_prints_help(self, capsys):
        """No command prints help."""
        from notifyrules.__main__ import main

        assert main([]) == 0
        assert "Rule Commands" in capsys.readouterr().out

    def test_evaluate_flags_parse(self, capsys):
        """evaluate flags parse into the command."""
        from notifyrules.__main__ import main

        code = main(
            ["rules", "evaluate", "--package", "com.x", "--since-last", "5", "--screen-on", "--explain"]
        )

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["trace"] == []
        assert output["context"]["last_notification_time"] > 0
