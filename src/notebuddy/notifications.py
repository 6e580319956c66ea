"""Non-blocking user notifications (the toast surface)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class Level(StrEnum):
    """Severity of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notifier(Protocol):
    """Anything that can surface a short message to the user."""

    def notify(self, level: Level, title: str, message: str) -> None:
        """Show ``message`` without blocking the caller."""


class LoggingNotifier:
    """Default notifier that writes notifications to the log."""

    _LEVELS = {
        Level.INFO: logging.INFO,
        Level.WARNING: logging.WARNING,
        Level.ERROR: logging.ERROR,
    }

    def notify(self, level: Level, title: str, message: str) -> None:
        """Log the notification at the matching level."""
        logger.log(self._LEVELS[level], "%s: %s", title, message)


@dataclass
class Notification:
    """A notification captured by ``RecordingNotifier``."""

    level: Level
    title: str
    message: str


@dataclass
class RecordingNotifier:
    """Keeps notifications in memory, e.g. for a UI to drain later."""

    notifications: list[Notification] = field(default_factory=list)

    def notify(self, level: Level, title: str, message: str) -> None:
        """Record the notification."""
        self.notifications.append(Notification(level, title, message))
