"""
notifyrules Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from notifyrules.core.config import get_settings

    settings = get_settings()
    store = RuleStore(JsonFileStorage(settings.rules_path))

Data Paths:
    All user data is stored in {instance_root}/userdata/:
    - userdata/conditional_rules.json: Persisted rule document
    - userdata/templates/*.yaml: User-defined quick templates

Environment Variables:
    NOTIFYRULES_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    NOTIFYRULES_DEBUG: Legacy debug flag (enables DEBUG level if set)
    NOTIFYRULES_LOG_JSON: Output logs as JSON
    NOTIFYRULES_INSTANCE_ROOT: Instance root override
    NOTIFYRULES_RULES_PATH: Rule document path override
    NOTIFYRULES_TEMPLATE_DIR: User template directory override
    NOTIFYRULES_ISOLATE_BAD_RECORDS: Skip malformed rule records instead of
        discarding the whole document on load
    NOTIFYRULES_INTENT_WEBHOOK_URL: POST intent events to this URL
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path | None:
    """
    Find the project root by searching upward for pyproject.toml.

    Returns:
        Directory containing pyproject.toml, or None if not found
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break  # Reached filesystem root
        current = parent

    return None


def _find_project_env_file() -> Path | None:
    """Return the project .env file if one exists next to pyproject.toml."""
    root = _find_project_root()
    if root is None:
        return None
    env_file = root / ".env"
    return env_file if env_file.exists() else None


def _find_instance_root() -> Path:
    """
    Find the instance root directory.

    Resolution order:
    1. NOTIFYRULES_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    override = os.environ.get("NOTIFYRULES_INSTANCE_ROOT")
    if override:
        return Path(override)

    root = _find_project_root()
    if root is not None:
        return root

    return Path.cwd()


_ENV_FILE = _find_project_env_file()


class NotifyRulesSettings(BaseSettings):
    """
    Rule engine configuration settings with validation.

    Environment variables are automatically loaded with the NOTIFYRULES_ prefix.
    All settings have sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFYRULES_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for rule engine components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default_factory=_find_instance_root,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    rules_path: Optional[Path] = Field(
        default=None,
        description="Rule document path (default: userdata/conditional_rules.json)",
    )

    template_dir: Optional[Path] = Field(
        default=None,
        description="User template directory (default: userdata/templates)",
    )

    # =========================================================================
    # Rule Loading & Intent Delivery
    # =========================================================================

    isolate_bad_records: bool = Field(
        default=False,
        description="Skip malformed rule records on load instead of discarding all rules",
    )

    intent_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook URL receiving intent events as JSON",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy NOTIFYRULES_DEBUG.

        Priority:
        1. Explicit NOTIFYRULES_LOG_LEVEL
        2. NOTIFYRULES_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def userdata_dir(self) -> Path:
        """Path to the user data directory."""
        return self.instance_root / "userdata"

    @property
    def effective_rules_path(self) -> Path:
        """Rule document path, falling back to the userdata default."""
        if self.rules_path is not None:
            return self.rules_path
        return self.userdata_dir / "conditional_rules.json"

    @property
    def effective_template_dir(self) -> Path:
        """User template directory, falling back to the userdata default."""
        if self.template_dir is not None:
            return self.template_dir
        return self.userdata_dir / "templates"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> NotifyRulesSettings:
    """
    Get the singleton settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return NotifyRulesSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


# =============================================================================
# Convenience Functions
# =============================================================================


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_settings().effective_log_level == "DEBUG"


def is_json_logging() -> bool:
    """Check if JSON logging is enabled."""
    return get_settings().log_json
