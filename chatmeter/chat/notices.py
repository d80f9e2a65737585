"""
User notices - the toast messages shown next to the chat.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notice:
    level: str  # "success", "info", "warning", "error"
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Collects notices for the UI and fans them out to listeners."""

    def __init__(self):
        self._pending: List[Notice] = []
        self._listeners: List[Callable[[Notice], None]] = []

    def add_listener(self, listener: Callable[[Notice], None]) -> None:
        self._listeners.append(listener)

    def notify(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"Notice ({level}): {message}")
        self._pending.append(notice)
        for listener in self._listeners:
            listener(notice)
        return notice

    def success(self, message: str) -> Notice:
        return self.notify("success", message)

    def info(self, message: str) -> Notice:
        return self.notify("info", message)

    def warning(self, message: str) -> Notice:
        return self.notify("warning", message)

    def error(self, message: str) -> Notice:
        return self.notify("error", message)

    @property
    def pending(self) -> List[Notice]:
        return list(self._pending)

    def drain(self) -> List[Notice]:
        """Return and forget all pending notices."""
        notices, self._pending = self._pending, []
        return notices
