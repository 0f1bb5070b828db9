"""Claim-and-deliver loop for the notification outbox.

Several processes may run a dispatcher against the same table. An entry is
owned by whoever wins the compare-and-set claim; a claim that outlives
``claim_ttl_ms`` is considered abandoned and handed back to PENDING.
"""

from __future__ import annotations

import logging
import os
import socket
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

from ..common.datetime_utils import now_utc
from ..core.enums import OutboxStatus
from .config import OutboxConfig
from .metrics import OutboxMetrics
from .model import DispatchResult, OutboxEntry
from .repository import OutboxRepository
from .service import backoff_ms

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 2000


class Deliverer(Protocol):
    def deliver(self, entry: OutboxEntry) -> None:
        """Raise on any delivery failure."""
        raise NotImplementedError


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class ParallelDispatcher:
    def __init__(
        self,
        repository: OutboxRepository,
        deliverer: Deliverer,
        config: OutboxConfig,
        metrics: OutboxMetrics,
        *,
        worker_id: Optional[str] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._repository = repository
        self._deliverer = deliverer
        self._config = config
        self._metrics = metrics
        self._worker_id = worker_id or default_worker_id()
        self._clock = clock
        self._running = threading.Lock()

    @property
    def worker_id(self) -> str:
        return self._worker_id

    def _is_claimable(self, entry: OutboxEntry, now: datetime, claim_cutoff: datetime) -> bool:
        if entry.status == OutboxStatus.PENDING:
            return entry.next_attempt_at is None or entry.next_attempt_at <= now
        if entry.status == OutboxStatus.PROCESSING:
            return entry.claimed_at is None or entry.claimed_at < claim_cutoff
        return False

    def _claim_batch(self, now: datetime) -> List[OutboxEntry]:
        claim_cutoff = now - timedelta(milliseconds=self._config.claim_ttl_ms)
        released = self._repository.release_expired_claims(claimed_before=claim_cutoff)
        if released:
            logger.warning("Released %s expired outbox claim(s)", released)

        claimed: List[OutboxEntry] = []
        for entry in self._repository.list_candidates(limit=self._config.batch_size):
            if not self._is_claimable(entry, now, claim_cutoff):
                continue
            if self._repository.claim(entry, claimed_at=now, claimed_by=self._worker_id):
                claimed.append(entry)
            else:
                logger.debug("Outbox entry %s claimed by another worker", entry.id)
        return claimed

    def _process(self, entry: OutboxEntry) -> str:
        try:
            self._deliverer.deliver(entry)
        except Exception as e:
            return self._handle_failure(entry, e)

        try:
            self._repository.mark_completed(entry.id, delivered_at=self._clock())
        except Exception as e:
            logger.warning("Outbox entry %s was delivered but could not be marked completed: %s", entry.id, e)
            return self._handle_failure(entry, e)
        self._metrics.increment("dispatched")
        logger.info("Outbox entry %s delivered to %s", entry.id, entry.destination)
        return "delivered"

    def _handle_failure(self, entry: OutboxEntry, error: Exception) -> str:
        attempts = entry.attempts + 1
        message = (str(error) or error.__class__.__name__)[:_MAX_ERROR_LENGTH]
        now = self._clock()
        self._metrics.increment("failed")

        if attempts >= self._config.max_attempts:
            try:
                self._repository.move_to_dead_letter(entry, attempts=attempts, last_error=message, failed_at=now)
            except Exception:
                logger.exception("Could not move outbox entry %s to the dead letter queue", entry.id)
                return "errored"
            self._metrics.increment("dead_lettered")
            logger.error("Outbox entry %s moved to dead letter queue after %s attempt(s): %s", entry.id, attempts, message)
            return "dead_lettered"

        next_attempt_at = now + timedelta(milliseconds=backoff_ms(attempts, self._config.retry_delay_ms))
        try:
            self._repository.reschedule(entry.id, attempts=attempts, next_attempt_at=next_attempt_at, last_error=message)
        except Exception:
            logger.exception("Could not reschedule outbox entry %s", entry.id)
            return "errored"
        logger.warning("Outbox entry %s failed (attempt %s), next attempt at %s: %s", entry.id, attempts, next_attempt_at, message)
        return "retried"

    def dispatch_pending(self, now: Optional[datetime] = None) -> DispatchResult:
        """Run one dispatch cycle. Returns an empty result if a cycle is already running."""
        if not self._running.acquire(blocking=False):
            logger.debug("Outbox dispatch already running; skipping")
            return DispatchResult()
        try:
            claimed = self._claim_batch(now or self._clock())
            outcomes: List[str] = []
            if claimed:
                workers = max(1, min(self._config.workers, len(claimed)))
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="outbox") as pool:
                    outcomes = list(pool.map(self._process, claimed))

            self._metrics.set_pending(self._repository.count_pending())
            return DispatchResult(
                claimed=len(claimed),
                delivered=outcomes.count("delivered"),
                retried=outcomes.count("retried"),
                dead_lettered=outcomes.count("dead_lettered"),
                errored=outcomes.count("errored"),
            )
        finally:
            self._running.release()
