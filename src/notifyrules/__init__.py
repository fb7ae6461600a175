"""
notifyrules - Conditional notification filtering rule engine.

Decides, for each incoming notification, whether to block it, make it
private, delay it, or rewrite its text, based on user-authored rules
evaluated in priority order.
"""

__version__ = "1.0.0"
