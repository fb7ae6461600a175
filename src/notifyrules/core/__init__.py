"""
notifyrules Core Module

Shared infrastructure: settings, structured logging and timestamp helpers.
"""

from .config import NotifyRulesSettings, get_settings, reset_settings
from .formatters import (
    current_millis,
    format_datetime,
    format_rule_timestamp,
    get_rule_timestamp,
    get_utc_now,
    get_utc_timestamp,
)
from .logging import get_logger

__all__ = [
    # Config
    "NotifyRulesSettings",
    "get_settings",
    "reset_settings",
    # Formatters
    "current_millis",
    "format_datetime",
    "format_rule_timestamp",
    "get_rule_timestamp",
    "get_utc_now",
    "get_utc_timestamp",
    # Logging
    "get_logger",
]
