"""Non-blocking user notifications (toasts) emitted by the flows."""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List

logger = logging.getLogger(__name__)


class NotificationLevel(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    level: NotificationLevel = NotificationLevel.INFO


class Notifier:
    def __init__(self):
        self.history: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []

    def subscribe(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, title: str, description: str = "", level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        notification = Notification(title=title, description=description, level=level)
        self.history.append(notification)
        if level == NotificationLevel.ERROR:
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, NotificationLevel.ERROR)
