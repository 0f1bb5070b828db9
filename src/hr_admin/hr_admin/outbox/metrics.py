from __future__ import annotations

import threading
from typing import Dict


class OutboxMetrics:
    """In-process counters for the notification outbox."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {"enqueued": 0, "dispatched": 0, "failed": 0, "dead_lettered": 0}
        self._pending = 0

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def set_pending(self, value: int) -> None:
        with self._lock:
            self._pending = int(value)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {**self._counters, "pending": self._pending}
