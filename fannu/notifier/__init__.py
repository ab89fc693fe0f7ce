"""
Notifier module
"""

from .creator_alerts import CreatorNotifier, EmailRenderer, get_notifier, set_notifier

__all__ = ["CreatorNotifier", "EmailRenderer", "get_notifier", "set_notifier"]
