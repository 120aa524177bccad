"""Pushover notification delivery."""

import logging

import aiohttp

from ..config.models import NotificationSettings
from .base import Notification, Notifier

logger = logging.getLogger(__name__)

# Pushover API limits
MAX_TITLE_LENGTH = 250
MAX_MESSAGE_LENGTH = 1024


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class PushoverNotifier(Notifier):
    """Sends notifications through the Pushover messages API.

    Acts as a no-op when either the user key or the application token is
    missing.
    """

    def __init__(self, settings: NotificationSettings):
        """Initialize notifier.

        Args:
            settings: Pushover credentials and endpoint
        """
        self.settings = settings

    @property
    def enabled(self) -> bool:
        """Whether both credentials are configured."""
        return self.settings.enabled

    async def send(self, notification: Notification) -> bool:
        """Deliver a notification to Pushover."""
        if not self.enabled:
            logger.debug(
                f"Pushover not configured, skipping notification: {notification.title}"
            )
            return False

        payload = {
            "token": self.settings.pushover_token,
            "user": self.settings.pushover_user,
            "title": _truncate(notification.title, MAX_TITLE_LENGTH),
            "message": _truncate(notification.message, MAX_MESSAGE_LENGTH),
            "priority": str(int(notification.priority)),
        }

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout)
            ) as session:
                async with session.post(self.settings.api_url, data=payload) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = {}
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(
                f"Failed to send notification '{notification.title}': {e}",
                extra={"priority": int(notification.priority)},
            )
            return False

        if isinstance(body, dict) and body.get("status") == 1:
            logger.info(f"Notification sent: {notification.title}")
            return True

        errors = body.get("errors") if isinstance(body, dict) else None
        logger.warning(
            f"Pushover rejected notification '{notification.title}'",
            extra={"status_code": response.status, "errors": errors},
        )
        return False
