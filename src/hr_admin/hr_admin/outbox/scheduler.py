from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from .config import OutboxConfig
from .dispatcher import ParallelDispatcher
from .repository import OutboxRepository

logger = logging.getLogger(__name__)


class OutboxCleanup:
    """Removes delivered/failed entries older than the retention window."""

    def __init__(self, repository: OutboxRepository, config: OutboxConfig):
        self._repository = repository
        self._config = config

    def run(self, now: Optional[datetime] = None) -> int:
        if self._config.cleanup_retention_ms <= 0:
            return 0
        cutoff = (now or now_utc()) - timedelta(milliseconds=self._config.cleanup_retention_ms)
        removed = self._repository.delete_finished_before(cutoff)
        if removed:
            logger.info("Outbox cleanup removed %s entr%s", removed, "y" if removed == 1 else "ies")
        return removed


class OutboxScheduler:
    """Background daemon thread driving dispatch and cleanup."""

    def __init__(
        self,
        dispatcher: ParallelDispatcher,
        cleanup: OutboxCleanup,
        config: OutboxConfig,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._dispatcher = dispatcher
        self._cleanup = cleanup
        self._config = config
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._last_cleanup: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name="outbox-scheduler", daemon=True)
            self._thread.start()
            logger.info(
                "Outbox scheduler started (dispatch every %sms, cleanup every %sms)",
                self._config.dispatch_interval_ms,
                self._config.cleanup_interval_ms,
            )

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            self._stop.set()
            thread, self._thread = self._thread, None
        if thread:
            thread.join(timeout=timeout)
            logger.info("Outbox scheduler stopped")

    def run_once(self) -> None:
        now = self._clock()
        try:
            self._dispatcher.dispatch_pending(now)
        except Exception:
            logger.exception("Outbox dispatch cycle failed")

        due = self._last_cleanup is None or now - self._last_cleanup >= timedelta(
            milliseconds=self._config.cleanup_interval_ms
        )
        if due:
            self._last_cleanup = now
            try:
                self._cleanup.run(now)
            except Exception:
                logger.exception("Outbox cleanup failed")

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self._config.dispatch_interval_ms / 1000.0)
