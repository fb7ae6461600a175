"""
Rule Document Serialization.

Document format (pretty-printed JSON, indent 2):

    {
      "version": "1.0",
      "lastModified": "2026-01-15 12:30:00",
      "rules": [
        {"id": ..., "name": ..., "description": ..., "enabled": true,
         "priority": 0, "createdDate": ..., "lastModified": ...,
         "conditions": [{"type", "parameter", "operator", "value"}],
         "actions": [{"type", "parameter", "value"}]}
      ]
    }

Two parsers share one signature (text -> list[Rule]) so either can be
handed to a RuleStore:
- parse_rules: any malformed record fails the whole document
- parse_rules_isolated: malformed records are logged and skipped
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from ..core.formatters import get_rule_timestamp
from ..core.logging import get_logger
from .errors import IncompatibleVersionError, RulesError, RulesFormatError
from .models import RULES_VERSION, Rule

logger = get_logger(__name__)

RuleParser = Callable[[str], list[Rule]]


# =============================================================================
# Writing
# =============================================================================


def rules_to_document(rules: list[Rule]) -> dict[str, Any]:
    """Build the persisted document for a rule list."""
    return {
        "version": RULES_VERSION,
        "lastModified": get_rule_timestamp(),
        "rules": [rule.to_dict() for rule in rules],
    }


def serialize_rules(rules: list[Rule]) -> str:
    """Serialize rules to the pretty-printed JSON document."""
    return json.dumps(rules_to_document(rules), indent=2, ensure_ascii=False)


# =============================================================================
# Reading
# =============================================================================


def is_compatible_version(version: str) -> bool:
    """Any 1.x version is compatible."""
    return version.startswith("1.")


def load_document(text: str) -> dict[str, Any]:
    """
    Decode and version-check a rule document.

    A missing version is treated as "1.0".

    Raises:
        RulesFormatError: Not JSON, or not a JSON object
        IncompatibleVersionError: Version is not 1.x
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RulesFormatError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise RulesFormatError("rule document must be a JSON object")

    version = data.get("version", RULES_VERSION)
    if not isinstance(version, str) or not is_compatible_version(version):
        raise IncompatibleVersionError(str(version))

    return data


def _rule_records(data: dict[str, Any]) -> list[Any]:
    if "rules" not in data:
        return []
    records = data["rules"]
    if not isinstance(records, list):
        raise RulesFormatError("'rules' must be a list")
    return records


def parse_rules(text: str) -> list[Rule]:
    """
    Parse a rule document, failing on the first malformed record.

    Raises:
        RulesFormatError: Malformed document or record
        UnknownKindError: Unrecognized condition/operator/action name
        IncompatibleVersionError: Version is not 1.x
    """
    data = load_document(text)
    return [Rule.from_dict(record, f"rules[{i}]") for i, record in enumerate(_rule_records(data))]


def parse_rules_isolated(text: str) -> list[Rule]:
    """
    Parse a rule document, skipping malformed records.

    Document-level problems (bad JSON, wrong version, 'rules' not a list)
    still raise.
    """
    data = load_document(text)
    rules: list[Rule] = []
    for i, record in enumerate(_rule_records(data)):
        try:
            rules.append(Rule.from_dict(record, f"rules[{i}]"))
        except RulesError as e:
            logger.warning(f"Skipping malformed rule record: {e}")
    return rules
