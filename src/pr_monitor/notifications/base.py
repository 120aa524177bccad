"""Notification message and delivery interface."""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass


class NotificationPriority(enum.IntEnum):
    """Push priority levels as understood by Pushover."""

    LOW = -1
    NORMAL = 0
    HIGH = 1


@dataclass
class Notification:
    """A push notification."""

    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL


class Notifier(ABC):
    """Abstract base class for notification delivery."""

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether notifications are actually delivered."""

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Deliver a notification.

        Delivery problems are logged, never raised: a lost notification must
        not interrupt a polling cycle.

        Returns:
            True if the notification was accepted by the provider
        """
