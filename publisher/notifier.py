"""Push notifications through ntfy.sh."""
import logging
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

NTFY_BASE_URL = 'https://ntfy.sh'
NOTIFICATION_TITLE = 'Seattle Sports Today Notification'

PRIORITY_MIN = 1
PRIORITY_LOW = 2
PRIORITY_DEFAULT = 3
PRIORITY_HIGH = 4
PRIORITY_MAX = 5

TAG_SIREN = 'rotating_light'
TAG_PARTY = 'partying_face'


class Notifier:
    """Posts plain text messages to a private ntfy topic."""

    def __init__(
        self,
        topic_provider: Callable[[], Optional[str]],
        base_url: str = NTFY_BASE_URL,
        timeout: int = 10,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the notifier.

        Args:
            topic_provider: Returns the topic name, or None when notifications are disabled
            base_url: ntfy server
            timeout: HTTP request timeout in seconds
            session: Optional requests session
        """
        self.topic_provider = topic_provider
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(self, text: str, priority: int = PRIORITY_DEFAULT, tags: Optional[str] = None) -> bool:
        """
        Send a notification.

        Args:
            text: Message body
            priority: ntfy priority, 1 (min) to 5 (max)
            tags: Optional comma-separated ntfy tags, rendered as emoji

        Returns:
            True if the message was delivered, False if skipped

        Raises:
            requests.RequestException: If the request fails
        """
        topic = self.topic_provider()
        if not topic:
            logger.warning("No notification topic configured, skipping notification")
            return False

        headers = {
            'Content-Type': 'text/plain',
            'Title': NOTIFICATION_TITLE,
            'Priority': str(priority),
        }
        if tags:
            headers['Tags'] = tags

        response = self.session.post(
            f"{self.base_url}/{topic}",
            data=text.encode('utf-8'),
            headers=headers,
            timeout=self.timeout
        )
        response.raise_for_status()
        return True
