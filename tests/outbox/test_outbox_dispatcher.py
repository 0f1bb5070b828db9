from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta

import pytest

from src.hr_admin.hr_admin.core.enums import OutboxStatus
from src.hr_admin.hr_admin.outbox.config import OutboxConfig
from src.hr_admin.hr_admin.outbox.dispatcher import ParallelDispatcher
from src.hr_admin.hr_admin.outbox.metrics import OutboxMetrics
from src.hr_admin.hr_admin.outbox.model import OutboxEntry
from src.hr_admin.hr_admin.outbox.service import OutboxService, backoff_ms
from tests.fakes import InMemoryOutbox

NOW = datetime(2026, 5, 1, 12, 0, 0)


class RecordingDeliverer:
    def __init__(self, failures=None):
        self.delivered = []
        self._failures = dict(failures or {})
        self._lock = threading.Lock()

    def deliver(self, entry):
        with self._lock:
            if self._failures.get(entry.id):
                self._failures[entry.id] -= 1
                raise RuntimeError(f"HTTP 503 unavailable for {entry.id}")
            self.delivered.append(entry.id)


def _entry(entry_id, **kw) -> OutboxEntry:
    values = dict(event_type="EMPLOYEE_CREATED", destination="https://hooks.example.com", payload="{}", next_attempt_at=NOW)
    values.update(kw)
    return OutboxEntry(id=entry_id, **values)


def _dispatcher(repo, deliverer, **config):
    metrics = OutboxMetrics()
    values = dict(retry_delay_ms=1000, max_attempts=3, batch_size=10, claim_ttl_ms=60_000, workers=2)
    values.update(config)
    return ParallelDispatcher(
        repo, deliverer, OutboxConfig(**values), metrics, worker_id="worker-1", clock=lambda: NOW
    ), metrics


def test_backoff_doubles_per_attempt():
    assert [backoff_ms(n, 1000) for n in (1, 2, 3, 4)] == [1000, 2000, 4000, 8000]


def test_due_entries_are_delivered_and_completed():
    repo = InMemoryOutbox()
    repo.insert(_entry("a"))
    repo.insert(_entry("b"))
    repo.insert(_entry("later", next_attempt_at=NOW + timedelta(minutes=5)))
    deliverer = RecordingDeliverer()
    dispatcher, metrics = _dispatcher(repo, deliverer)

    result = dispatcher.dispatch_pending(NOW)

    assert result.claimed == 2 and result.delivered == 2
    assert sorted(deliverer.delivered) == ["a", "b"]
    assert repo.entries["a"].status == OutboxStatus.COMPLETED
    assert repo.entries["later"].status == OutboxStatus.PENDING
    assert metrics.snapshot()["dispatched"] == 2
    assert metrics.snapshot()["pending"] == 1


def test_failed_delivery_is_rescheduled_with_backoff():
    repo = InMemoryOutbox()
    repo.insert(_entry("a", attempts=1))
    dispatcher, metrics = _dispatcher(repo, RecordingDeliverer({"a": 1}))

    result = dispatcher.dispatch_pending(NOW)

    entry = repo.entries["a"]
    assert result.retried == 1
    assert entry.status == OutboxStatus.PENDING
    assert entry.attempts == 2
    assert entry.next_attempt_at == NOW + timedelta(milliseconds=2000)
    assert "HTTP 503" in entry.last_error
    assert entry.claimed_by is None
    assert metrics.snapshot()["failed"] == 1


def test_exhausted_entry_goes_to_dead_letter_queue():
    repo = InMemoryOutbox()
    repo.insert(_entry("a", attempts=2))
    dispatcher, metrics = _dispatcher(repo, RecordingDeliverer({"a": 1}))

    result = dispatcher.dispatch_pending(NOW)

    assert result.dead_lettered == 1
    assert "a" not in repo.entries
    assert repo.dead_letters == [{"id": "a", "attempts": 3, "last_error": "HTTP 503 unavailable for a"}]
    assert metrics.snapshot()["dead_lettered"] == 1


def test_completion_failure_reschedules_entry_and_finishes_batch():
    repo = InMemoryOutbox(fail_completions={"a"})
    repo.insert(_entry("a"))
    repo.insert(_entry("b"))
    repo.insert(_entry("later", next_attempt_at=NOW + timedelta(minutes=5)))
    deliverer = RecordingDeliverer()
    dispatcher, metrics = _dispatcher(repo, deliverer)

    result = dispatcher.dispatch_pending(NOW)

    assert result.claimed == 2
    assert result.delivered == 1 and result.retried == 1 and result.errored == 0
    assert repo.entries["b"].status == OutboxStatus.COMPLETED
    entry = repo.entries["a"]
    assert entry.status == OutboxStatus.PENDING
    assert entry.attempts == 1
    assert "Lost connection" in entry.last_error
    assert metrics.snapshot()["pending"] == 2


def test_dead_letter_failure_is_reported_without_aborting_the_batch():
    repo = InMemoryOutbox(fail_dead_letters=True)
    repo.insert(_entry("a"))
    repo.insert(_entry("b"))
    deliverer = RecordingDeliverer({"a": 1})
    dispatcher, metrics = _dispatcher(repo, deliverer, max_attempts=1)

    result = dispatcher.dispatch_pending(NOW)

    assert result.claimed == 2
    assert result.delivered == 1 and result.errored == 1 and result.dead_lettered == 0
    assert deliverer.delivered == ["b"]
    assert repo.dead_letters == []
    assert repo.entries["a"].status == OutboxStatus.PROCESSING
    assert metrics.snapshot()["dead_lettered"] == 0
    assert metrics.snapshot()["failed"] == 1


def test_entries_claimed_elsewhere_are_skipped():
    repo = InMemoryOutbox(lose_claims={"a"})
    repo.insert(_entry("a"))
    repo.insert(_entry("b"))
    deliverer = RecordingDeliverer()
    dispatcher, _ = _dispatcher(repo, deliverer)

    result = dispatcher.dispatch_pending(NOW)

    assert result.claimed == 1
    assert deliverer.delivered == ["b"]
    assert repo.entries["a"].status == OutboxStatus.PENDING


def test_fresh_claims_are_respected_and_stale_ones_recovered():
    repo = InMemoryOutbox()
    repo.insert(_entry("fresh", status=OutboxStatus.PROCESSING, claimed_at=NOW - timedelta(seconds=10), claimed_by="other"))
    repo.insert(_entry("stale", status=OutboxStatus.PROCESSING, claimed_at=NOW - timedelta(minutes=5), claimed_by="dead"))
    deliverer = RecordingDeliverer()
    dispatcher, _ = _dispatcher(repo, deliverer)

    dispatcher.dispatch_pending(NOW)

    assert deliverer.delivered == ["stale"]
    assert repo.entries["fresh"].claimed_by == "other"


def test_overlapping_runs_are_skipped():
    repo = InMemoryOutbox()
    repo.insert(_entry("a"))
    dispatcher, _ = _dispatcher(repo, RecordingDeliverer())
    dispatcher._running.acquire()
    try:
        assert dispatcher.dispatch_pending(NOW).claimed == 0
    finally:
        dispatcher._running.release()
    assert dispatcher.dispatch_pending(NOW).claimed == 1


def test_enqueue_serializes_payload_and_retries():
    repo = InMemoryOutbox(fail_inserts=1)
    sleeps = []
    metrics = OutboxMetrics()
    service = OutboxService(repo, OutboxConfig(retry_delay_ms=1000), metrics, sleep=sleeps.append)

    entry = service.enqueue(event_type="EMPLOYEE_CREATED", destination="https://x.example", payload={"a": 1})

    assert json.loads(repo.entries[entry.id].payload) == {"a": 1}
    assert entry.status == OutboxStatus.PENDING
    assert sleeps == [1.0]
    assert metrics.snapshot()["enqueued"] == 1


def test_enqueue_gives_up_after_configured_attempts():
    repo = InMemoryOutbox(fail_inserts=5)
    service = OutboxService(repo, OutboxConfig(enqueue_max_attempts=3), OutboxMetrics(), sleep=lambda _: None)
    with pytest.raises(RuntimeError):
        service.enqueue(event_type="E", destination="https://x.example", payload={})
    assert repo.fail_inserts == 2
