"""
User-facing notifications (toasts)

Stores report the outcome of every operation here. Delivery is
fire-and-forget: nothing waits for or acknowledges a notification.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE


class NotificationSink(ABC):
    """Abstract base class for notification channels"""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass

    def success(self, title: str, description: str) -> None:
        self.notify(Notification(title, description, DEFAULT))

    def error(self, title: str, description: str) -> None:
        self.notify(Notification(title, description, DESTRUCTIVE))


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log; used when no UI is attached"""

    def notify(self, notification: Notification) -> None:
        if notification.is_error:
            logger.warning(f"🔔 {notification.title}: {notification.description}")
        else:
            logger.info(f"🔔 {notification.title}: {notification.description}")


class CollectingNotificationSink(NotificationSink):
    """Keeps the most recent notifications for a UI to drain"""

    def __init__(self, max_size: int = 50):
        self.notifications = deque(maxlen=max_size)

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def drain(self) -> List[Notification]:
        """Return pending notifications, oldest first, and clear them"""
        pending = list(self.notifications)
        self.notifications.clear()
        return pending


def safe_notify(sink: NotificationSink, notification: Notification) -> None:
    """Deliver without letting a broken sink break the caller"""
    try:
        sink.notify(notification)
    except Exception as e:
        logger.warning(f"⚠️ Notification sink failed: {e}")
