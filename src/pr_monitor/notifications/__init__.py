"""Push notification delivery."""

from .base import Notification, NotificationPriority, Notifier
from .pushover import PushoverNotifier

__all__ = ["Notification", "NotificationPriority", "Notifier", "PushoverNotifier"]
