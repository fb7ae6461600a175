"""
notifyrules Structured Logging

Every module in the package logs through ``get_logger(__name__)`` so one
shared stderr handler, one level and one output format apply to the whole
rule engine:

- Level from NOTIFYRULES_LOG_LEVEL (NOTIFYRULES_DEBUG forces DEBUG)
- Text lines ``[RULES LEVEL] [module] message`` or JSON with NOTIFYRULES_LOG_JSON
- ``extra=`` fields are carried into JSON output

Usage:
    from notifyrules.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Rule applied", extra={"rule": "Quiet Time"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

_PACKAGE = "notifyrules"

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class NotifyRulesFormatter(logging.Formatter):
    """Text or JSON formatter for rule engine logs."""

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        if self.json_output:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        module = record.name.rpartition(".")[2]
        line = f"[RULES {record.levelname}] [{module}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    def _format_json(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(NotifyRulesFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get the configured logger for a module.

    The first call for a name attaches the shared handler and the configured
    level; later calls return the cached logger unchanged.
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        logger.setLevel(get_settings().log_level_int)
        logger.addHandler(_shared_handler())
        logger.propagate = False
        _loggers[name] = logger
    return logger


def set_log_level(level: int) -> None:
    """Change the level of every logger handed out by get_logger."""
    for logger in _loggers.values():
        logger.setLevel(level)


def debug_enabled() -> bool:
    """True when the configured level includes DEBUG."""
    return get_settings().log_level_int <= logging.DEBUG


def reset_logging() -> None:
    """
    Return notifyrules loggers to stock behaviour for test capture.

    Every ``notifyrules`` logger known to the logging manager propagates
    again at level NOTSET, and the shared handler is detached and dropped.
    The logger cache is kept, so a later get_logger() for the same name
    does not re-attach a handler.
    """
    global _handler

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name == _PACKAGE or name.startswith(_PACKAGE + "."):
            logger.propagate = True
            logger.setLevel(logging.NOTSET)

    if _handler is not None:
        for logger in _loggers.values():
            logger.removeHandler(_handler)
    _handler = None
