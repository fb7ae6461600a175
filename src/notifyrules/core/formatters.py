"""
notifyrules Formatters

Timestamp helpers shared by the rule store, serialization and CLI.
"""

import time
from datetime import datetime, timezone

# Rule documents carry local wall-clock stamps in this format
RULE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# Date/Time Formatting
# =============================================================================


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for display.

    Args:
        dt: datetime object

    Returns:
        ISO format string
    """
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def get_utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime with UTC timezone
    """
    return datetime.now(timezone.utc)


def get_utc_timestamp() -> str:
    """
    Get current UTC timestamp string.

    Returns:
        ISO format timestamp like "2026-01-15T12:30:00Z"
    """
    return format_datetime(get_utc_now())


def format_rule_timestamp(dt: datetime) -> str:
    """Format a local datetime as a rule document stamp ("2026-01-15 12:30:00")."""
    return dt.strftime(RULE_TIMESTAMP_FORMAT)


def get_rule_timestamp() -> str:
    """Current local time as a rule document stamp."""
    return format_rule_timestamp(datetime.now())


# =============================================================================
# Epoch Helpers
# =============================================================================


def current_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000
