"""
Rule Store.

Holds the in-memory rule list and mirrors every mutation to storage.
The list is guarded by one re-entrant lock; callers only ever receive
copies (get_all_rules / snapshot) and swap the whole list with replace().

Load failures never escape: the rule list becomes empty and the error is
logged. Save failures are logged and not retried.
"""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..core.logging import get_logger
from .serialization import RuleParser, parse_rules, parse_rules_isolated, serialize_rules

if TYPE_CHECKING:
    from ..core.config import NotifyRulesSettings
    from .models import Rule

logger = get_logger(__name__)


# =============================================================================
# Storage Backends
# =============================================================================


class RuleStorage(Protocol):
    """Holds one serialized rule document."""

    def read(self) -> str | None:
        """Return the stored document, or None if nothing is stored."""
        ...

    def write(self, text: str) -> None: ...


class JsonFileStorage:
    """Rule document in a single JSON file. Parent directories are created on write."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file in the same directory, then swap it in
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        return f"JsonFileStorage({str(self.path)!r})"


class MemoryStorage:
    """Rule document held in memory."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text
        self.writes = 0

    def read(self) -> str | None:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1


# =============================================================================
# Store
# =============================================================================


class RuleStore:
    """
    Single owner of the active rule list.

    Usage:
        store = RuleStore(JsonFileStorage(path))
        store.add_rule(rule)
        rules = store.get_all_rules()
    """

    def __init__(
        self,
        storage: RuleStorage,
        parser: RuleParser | None = None,
        autoload: bool = True,
    ) -> None:
        """
        Initialize rule store.

        Args:
            storage: Backend holding the serialized document
            parser: Document parser (default: parse_rules, fail on any bad record)
            autoload: Load from storage immediately
        """
        self._storage = storage
        self._parser: RuleParser = parser or parse_rules
        self._rules: list[Rule] = []
        self._lock = threading.RLock()

        if autoload:
            self._load()

    @classmethod
    def from_settings(cls, settings: NotifyRulesSettings | None = None) -> RuleStore:
        """Build a file-backed store from settings (path and bad-record policy)."""
        if settings is None:
            from ..core.config import get_settings

            settings = get_settings()

        parser = parse_rules_isolated if settings.isolate_bad_records else parse_rules
        return cls(JsonFileStorage(settings.effective_rules_path), parser=parser)

    @property
    def storage(self) -> RuleStorage:
        return self._storage

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> None:
        with self._lock:
            try:
                text = self._storage.read()
                if not text:
                    return
                self._rules = self._parser(text)
                logger.debug(f"Loaded {len(self._rules)} conditional rules")
            except Exception as e:
                logger.error(f"Error loading conditional rules, discarding all rules: {e}")
                self._rules = []

    def _save(self) -> None:
        with self._lock:
            try:
                self._storage.write(serialize_rules(self._rules))
                logger.debug(f"Saved {len(self._rules)} conditional rules")
            except Exception as e:
                logger.error(f"Error saving conditional rules: {e}")

    def reload_rules(self) -> None:
        """
        Re-read rules from storage.

        An empty store leaves the current list untouched.
        """
        self._load()
        logger.debug(f"Reloaded conditional rules - {len(self)} rules loaded")

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_rule(self, rule: Rule) -> None:
        """Append a rule and persist."""
        with self._lock:
            self._rules.append(rule)
            self._save()
        logger.debug(f"Added conditional rule: {rule.name}")

    def remove_rule(self, rule_id: str) -> bool:
        """
        Remove every rule with the given id and persist.

        Returns:
            True if a rule was removed
        """
        with self._lock:
            before = len(self._rules)
            self._rules = [r for r in self._rules if r.id != rule_id]
            removed = len(self._rules) != before
            if removed:
                self._save()
        if removed:
            logger.debug(f"Removed conditional rule: {rule_id}")
        return removed

    def update_rule(self, rule: Rule) -> bool:
        """
        Replace the rule with the same id, stamping a new last_modified.

        Returns:
            False if no rule has that id (nothing changes)
        """
        with self._lock:
            for index, existing in enumerate(self._rules):
                if existing.id == rule.id:
                    rule.touch()
                    self._rules[index] = rule
                    self._save()
                    logger.debug(f"Updated conditional rule: {rule.name}")
                    return True
        logger.debug(f"Update ignored, no rule with id {rule.id}")
        return False

    def replace(self, rules: list[Rule]) -> None:
        """Swap in a whole new rule list and persist."""
        with self._lock:
            self._rules = [r.copy() for r in rules]
            self._save()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_all_rules(self) -> list[Rule]:
        """Shallow copy of the rule list."""
        with self._lock:
            return list(self._rules)

    def snapshot(self) -> list[Rule]:
        """Deep copy of the rule list; edits never reach the store."""
        with self._lock:
            return [r.copy() for r in self._rules]

    def get_rule_by_id(self, rule_id: str) -> Rule | None:
        with self._lock:
            for rule in self._rules:
                if rule.id == rule_id:
                    return rule
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    # =========================================================================
    # Export / Import
    # =========================================================================

    def export_json(self) -> str:
        """Serialize the current rules as a rule document."""
        with self._lock:
            return serialize_rules(self._rules)

    def import_json(self, text: str, replace: bool = True) -> int:
        """
        Import rules from a rule document.

        Unlike loading from storage, import errors are raised to the caller
        and leave the store unchanged.

        Args:
            text: Rule document
            replace: Replace all rules (True) or merge by id (False)

        Returns:
            Number of rules imported

        Raises:
            RulesError: Document could not be parsed
        """
        imported = self._parser(text)
        with self._lock:
            if replace:
                self._rules = imported
            else:
                by_id = {rule.id: rule for rule in imported}
                merged = [by_id.pop(r.id, r) for r in self._rules]
                merged.extend(r for r in imported if r.id in by_id)
                self._rules = merged
            self._save()
        logger.info(f"Imported {len(imported)} rules ({'replace' if replace else 'merge'})")
        return len(imported)
