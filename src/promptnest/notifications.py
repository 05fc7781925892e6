"""
Notification sink: short user-facing messages (toasts).

One-way and best-effort. Nothing in promptnest waits on a notification or
depends on it for correctness; sink failures are logged and swallowed at the
call site (see notify_safely).
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol

logger = logging.getLogger(__name__)


class MessageLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notifier(Protocol):
    def notify(self, message: str, level: MessageLevel = MessageLevel.INFO) -> None: ...


_LOG_LEVELS = {
    MessageLevel.INFO: logging.INFO,
    MessageLevel.SUCCESS: logging.INFO,
    MessageLevel.WARNING: logging.WARNING,
    MessageLevel.ERROR: logging.ERROR,
}


class LoggingNotifier:
    """Default sink when the host provides no toast surface: log the message."""

    def notify(self, message: str, level: MessageLevel = MessageLevel.INFO) -> None:
        logger.log(_LOG_LEVELS[level], f"{level.value.upper()}: {message}")


@dataclass(frozen=True)
class Notification:
    message: str
    level: MessageLevel


class RecordingNotifier:
    """Keeps every notification in order. For tests and headless embedding."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, message: str, level: MessageLevel = MessageLevel.INFO) -> None:
        self.notifications.append(Notification(message, level))

    def levels(self) -> List[MessageLevel]:
        return [n.level for n in self.notifications]

    @property
    def last(self) -> Notification:
        return self.notifications[-1]

    def clear(self) -> None:
        self.notifications.clear()


def notify_safely(notifier: Notifier, message: str, level: MessageLevel = MessageLevel.INFO) -> None:
    """Send a notification without letting a broken sink escape."""
    try:
        notifier.notify(message, level)
    except Exception as e:
        logger.warning(f"Notifier failed for {level.value} message {message!r}: {e}")
