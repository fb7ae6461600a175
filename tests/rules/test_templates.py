"""
Tests for quick templates, user templates and example rules.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import pytest

from notifyrules.rules import (
    ActionType,
    ConditionEvaluator,
    ConditionType,
    MemoryStorage,
    NotificationContext,
    RuleEvaluator,
    RuleStore,
    StaticDeviceState,
    TEMPLATE_REGISTRY,
    TemplateLoader,
    create_example_rules,
)
from notifyrules.rules.templates import build_example_rules


class TestTemplateRegistry:
    """Test built-in templates."""

    def test_builtin_keys(self):
        """Five templates ship built in."""
        assert list(TEMPLATE_REGISTRY) == [
            "night_mode",
            "screen_on",
            "work_hours",
            "focus_mode",
            "quiet_time",
        ]

    @pytest.mark.parametrize(
        "key,priority,action",
        [
            ("night_mode", 8, ActionType.DISABLE_MASTER_SWITCH),
            ("screen_on", 9, ActionType.BLOCK_NOTIFICATION),
            ("work_hours", 6, ActionType.MAKE_PRIVATE),
            ("focus_mode", 5, ActionType.SET_DELAY),
            ("quiet_time", 10, ActionType.BLOCK_NOTIFICATION),
        ],
    )
    def test_template_contents(self, key, priority, action):
        """Each template has its priority and action."""
        spec = TEMPLATE_REGISTRY[key]
        assert spec.priority == priority
        assert [a.type for a in spec.actions] == [action]

    def test_focus_mode_delay(self):
        """Focus mode delays by five minutes."""
        assert TEMPLATE_REGISTRY["focus_mode"].actions[0].value == "300"

    def test_create_rule_ids_and_copies(self):
        """Template rules get a template_ id and independent lists."""
        rule = TemplateLoader().create_rule("quiet_time")

        assert rule.id.startswith("template_quiet_time_")
        assert rule.enabled is True
        assert rule.name == "Quiet Time"

        rule.conditions[0].value = "00:00-00:01"
        assert TEMPLATE_REGISTRY["quiet_time"].conditions[0].value == "23:00-07:00"

    def test_unknown_template(self):
        """Unknown keys raise KeyError."""
        with pytest.raises(KeyError):
            TemplateLoader().create_rule("nope")

    def test_to_dict(self):
        """Template summaries describe conditions and actions."""
        data = TEMPLATE_REGISTRY["quiet_time"].to_dict()
        assert data["key"] == "quiet_time"
        assert data["builtin"] is True
        assert data["conditions"] == ["Time of Day [quiet_hours] in range 23:00-07:00"]


class TestTemplateBehavior:
    """Templates evaluate as shipped."""

    def test_screen_on_blocks_when_screen_on(self):
        """screen_on blocks while the screen is interactive."""
        rule = TemplateLoader().create_rule("screen_on")
        ctx = NotificationContext(package_name="com.x")

        on = RuleEvaluator(ConditionEvaluator(device_state=StaticDeviceState(screen_on=True)))
        off = RuleEvaluator(ConditionEvaluator(device_state=StaticDeviceState(screen_on=False)))

        assert on.apply_rules([rule], ctx).should_block is True
        assert off.apply_rules([rule], ctx).should_block is False

    def test_work_hours_never_fires(self):
        """The weekday list with CONTAINS never matches, so work_hours never fires."""
        rule = TemplateLoader().create_rule("work_hours")
        wednesday_noon = datetime(2026, 1, 14, 12, 0)
        evaluator = RuleEvaluator(ConditionEvaluator(clock=lambda: wednesday_noon))
        ctx = NotificationContext(package_name="com.instagram.android")

        assert evaluator.apply_rules([rule], ctx).has_changes is False

    def test_focus_mode_app_list_is_literal(self):
        """focus_mode only matches a package containing the whole list string."""
        rule = TemplateLoader().create_rule("focus_mode")
        evaluator = RuleEvaluator(ConditionEvaluator())

        assert not evaluator.apply_rules([rule], NotificationContext(package_name="com.reddit.frontpage")).has_changes

    def test_night_mode_emits_intent(self):
        """night_mode records a master switch intent at night."""
        rule = TemplateLoader().create_rule("night_mode")
        evaluator = RuleEvaluator(ConditionEvaluator(clock=lambda: datetime(2026, 1, 14, 23, 0)))

        result = evaluator.apply_rules([rule], NotificationContext(app_name="Mail"))

        assert [i.action_type for i in result.intents] == [ActionType.DISABLE_MASTER_SWITCH]


# =============================================================================
# User Templates
# =============================================================================


class TestTemplateLoader:
    """Test TemplateLoader with user YAML templates."""

    def test_builtins_without_user_dir(self):
        """No user directory lists the built-ins."""
        assert len(TemplateLoader(None).list_templates()) == 5

    def test_loads_user_template(self, tmp_path: Path):
        """A YAML rule body becomes a template keyed by file stem."""
        (tmp_path / "late_chat.yaml").write_text(
            "name: Late chat\n"
            "priority: 4\n"
            "conditions:\n"
            "  - {type: TIME_OF_DAY, operator: GREATER_THAN, value: '23:00'}\n"
            "actions:\n"
            "  - {type: MAKE_PRIVATE}\n",
            encoding="utf-8",
        )
        loader = TemplateLoader(tmp_path)

        spec = loader.get_template("late_chat")

        assert spec is not None
        assert spec.builtin is False
        assert spec.priority == 4
        assert spec.conditions[0].type == ConditionType.TIME_OF_DAY

        rule = loader.create_rule("late_chat")
        assert rule.id.startswith("template_late_chat_")
        assert rule.name == "Late chat"

    def test_explicit_key_shadows_builtin(self, tmp_path: Path):
        """A user template with a built-in key replaces it."""
        (tmp_path / "mine.yaml").write_text(
            "key: quiet_time\nname: My quiet time\nactions:\n  - {type: MAKE_PRIVATE}\n",
            encoding="utf-8",
        )
        loader = TemplateLoader(tmp_path)

        templates = {t.key: t for t in loader.list_templates()}

        assert len(templates) == 5
        assert templates["quiet_time"].name == "My quiet time"
        assert templates["quiet_time"].builtin is False

    def test_invalid_files_skipped(self, tmp_path: Path, caplog):
        """Broken YAML or rule bodies are logged and skipped."""
        (tmp_path / "broken.yaml").write_text("name: [unclosed\n", encoding="utf-8")
        (tmp_path / "badkind.yaml").write_text(
            "actions:\n  - {type: EXPLODE}\n", encoding="utf-8"
        )
        (tmp_path / "list.yaml").write_text("- a\n- b\n", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            loader = TemplateLoader(tmp_path)
            keys = [t.key for t in loader.list_templates()]

        assert "broken" not in keys
        assert "badkind" not in keys
        assert "list" not in keys
        assert "Failed to load template" in caplog.text

    def test_undecodable_file_skipped(self, tmp_path: Path, caplog):
        """A file that is not UTF-8 is skipped; other templates still load."""
        (tmp_path / "binary.yaml").write_bytes(b"name: \xff\xfe\n")
        (tmp_path / "ok.yaml").write_text(
            "name: Fine\nactions:\n  - {type: BLOCK_NOTIFICATION}\n", encoding="utf-8"
        )

        with caplog.at_level(logging.WARNING):
            keys = [t.key for t in TemplateLoader(tmp_path).list_templates()]

        assert "binary" not in keys
        assert "ok" in keys
        assert "Failed to load template" in caplog.text

    def test_infinite_priority_defaults(self, tmp_path: Path):
        """A non-finite priority loads with priority 0."""
        (tmp_path / "inf.yaml").write_text(
            "name: Inf\npriority: .inf\nactions:\n  - {type: MAKE_PRIVATE}\n", encoding="utf-8"
        )

        spec = TemplateLoader(tmp_path).get_template("inf")

        assert spec is not None
        assert spec.priority == 0

    def test_unknown_key(self, tmp_path: Path):
        """create_rule raises KeyError for unknown keys."""
        with pytest.raises(KeyError):
            TemplateLoader(tmp_path).create_rule("missing")


# =============================================================================
# Example Rules
# =============================================================================


class TestExampleRules:
    """Test example rule creation."""

    def test_example_rules(self):
        """Two examples with their priorities and actions."""
        work, evening = build_example_rules()

        assert (work.name, work.priority) == ("Work Hours Focus", 10)
        assert (evening.name, evening.priority) == ("Evening Quiet Time", 5)
        assert [a.type for a in evening.actions] == [ActionType.SET_DELAY, ActionType.LOG_EVENT]
        assert evening.actions[0].value == "3"

    def test_added_only_to_empty_store(self, rule_factory):
        """Examples are not added when rules exist."""
        empty = RuleStore(MemoryStorage())
        assert len(create_example_rules(empty)) == 2
        assert len(empty) == 2

        busy = RuleStore(MemoryStorage())
        busy.add_rule(rule_factory())
        assert create_example_rules(busy) == []
        assert len(busy) == 1

    def test_work_hours_focus_fires_on_weekday(self):
        """The weekday example makes facebook notifications private at work."""
        work, _ = build_example_rules()
        evaluator = RuleEvaluator(ConditionEvaluator(clock=lambda: datetime(2026, 1, 14, 11, 0)))

        result = evaluator.apply_rules([work], NotificationContext(package_name="com.facebook.katana"))

        assert result.should_make_private is True
        assert len(result.intents) == 1
