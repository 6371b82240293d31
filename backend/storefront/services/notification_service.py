# Overview: Service-layer queue of user-facing notifications (toasts) raised by the cart.

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass


LEVEL_SUCCESS = "success"
LEVEL_ERROR = "error"
LEVEL_INFO = "info"
VALID_LEVELS = {LEVEL_SUCCESS, LEVEL_ERROR, LEVEL_INFO}

# Oldest notifications are dropped past this many undelivered entries
MAX_PENDING = 50


@dataclass(frozen=True)
class Notification:
    level: str
    message: str

    def to_dict(self) -> dict:
        return {"level": self.level, "message": self.message}


class Notifier:
    """
    Collects notifications until a view drains them into its response.

    Notifications are an observable side effect separate from the state
    change that produced them.
    """

    def __init__(self, max_pending: int = MAX_PENDING):
        self._pending: deque[Notification] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    def push(self, level: str, message: str) -> Notification:
        if level not in VALID_LEVELS:
            raise ValueError(f"Unknown notification level: {level}")
        notification = Notification(level=level, message=message)
        with self._lock:
            self._pending.append(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.push(LEVEL_SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.push(LEVEL_ERROR, message)

    def info(self, message: str) -> Notification:
        return self.push(LEVEL_INFO, message)

    def pending(self) -> list[Notification]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and forget all pending notifications."""
        with self._lock:
            drained = list(self._pending)
            self._pending.clear()
        return drained
