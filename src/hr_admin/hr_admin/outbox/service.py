from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Callable, Mapping

from ..common.datetime_utils import now_utc
from ..core.enums import OutboxStatus
from .config import OutboxConfig
from .metrics import OutboxMetrics
from .model import OutboxEntry
from .repository import OutboxRepository

logger = logging.getLogger(__name__)


def backoff_ms(attempt: int, retry_delay_ms: int) -> int:
    """Exponential backoff: 1x, 2x, 4x ... the base delay."""
    return (2 ** max(attempt - 1, 0)) * retry_delay_ms


class OutboxService:
    """Writes notification entries to the outbox table."""

    def __init__(
        self,
        repository: OutboxRepository,
        config: OutboxConfig,
        metrics: OutboxMetrics,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._repository = repository
        self._config = config
        self._metrics = metrics
        self._sleep = sleep

    def enqueue(self, *, event_type: str, destination: str, payload: Mapping[str, Any]) -> OutboxEntry:
        now = now_utc()
        entry = OutboxEntry(
            id=str(uuid.uuid4()),
            event_type=event_type,
            destination=destination,
            payload=json.dumps(payload, default=str),
            status=OutboxStatus.PENDING,
            attempts=0,
            next_attempt_at=now,
            created_at=now,
        )

        attempt = 0
        while True:
            attempt += 1
            try:
                self._repository.insert(entry)
                break
            except Exception:
                if attempt >= self._config.enqueue_max_attempts:
                    logger.error("Outbox enqueue failed after %s attempt(s) for %s", attempt, destination)
                    raise
                delay = backoff_ms(attempt, self._config.retry_delay_ms)
                logger.warning("Outbox enqueue attempt %s failed; retrying in %sms", attempt, delay)
                self._sleep(delay / 1000.0)

        self._metrics.increment("enqueued")
        logger.info("Outbox entry %s enqueued (%s)", entry.id, event_type)
        return entry
