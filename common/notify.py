"""
Notification sinks.

Anything with a ``show(message, level)`` method can be handed to the
workspace or the sequence engine.  Passing ``None`` keeps them silent.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


class Notifier(Protocol):
    def show(self, message: str, level: NotificationLevel) -> None:
        ...


_LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class LogNotifier:
    """Route user notifications to the ``logging`` tree."""

    def __init__(self, name: str = "notifications") -> None:
        self._logger = logging.getLogger(name)

    def show(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        level = NotificationLevel(level)
        self._logger.log(_LOG_LEVELS[level], "[%s] %s", level.value, message)


class RecordingNotifier:
    """Keep every notification in memory (handy for adapters and tests)."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, NotificationLevel]] = []

    def show(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        self.messages.append((message, NotificationLevel(level)))

    def levels(self) -> list[NotificationLevel]:
        return [lvl for _, lvl in self.messages]

    def clear(self) -> None:
        self.messages.clear()


def notify(sink: Optional[Notifier], message: str,
           level: NotificationLevel = NotificationLevel.INFO) -> None:
    """Send *message* to *sink* if there is one.

    A failing sink must never take the caller down with it, so its errors are
    logged and dropped.
    """
    if sink is None:
        return
    try:
        sink.show(message, level)
    except Exception:
        logger.exception("Notification sink failed for message %r", message)
