"""
notifyrules Commands

Command implementations for the notifyrules CLI.
Each module handles a logical group of related commands.
"""

from . import rules

__all__ = [
    "rules",
]
