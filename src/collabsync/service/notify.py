"""User-facing notification sinks (fire and forget)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger("collabsync.notify")


class Severity(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class Notifier(Protocol):
    def success(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...


class LoggingNotifier:
    """Default sink: writes notifications to the ``collabsync.notify`` logger."""

    def success(self, text: str) -> None:
        logger.info("%s", text)

    def error(self, text: str) -> None:
        logger.warning("%s", text)


@dataclass(frozen=True)
class Notification:
    severity: Severity
    text: str


@dataclass
class MemoryNotifier:
    """Keeps every notification in order.  Handy for headless callers and tests."""

    notifications: list[Notification] = field(default_factory=list)

    def success(self, text: str) -> None:
        self.notifications.append(Notification(Severity.SUCCESS, text))

    def error(self, text: str) -> None:
        self.notifications.append(Notification(Severity.ERROR, text))

    def texts(self, severity: Severity | None = None) -> list[str]:
        return [n.text for n in self.notifications if severity is None or n.severity == severity]

    def clear(self) -> None:
        self.notifications.clear()
