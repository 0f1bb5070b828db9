from __future__ import annotations

from datetime import datetime
from typing import List, Protocol

from .model import OutboxEntry


class OutboxRepository(Protocol):
    def insert(self, entry: OutboxEntry) -> None:
        raise NotImplementedError

    def release_expired_claims(self, *, claimed_before: datetime) -> int:
        raise NotImplementedError

    def list_candidates(self, *, limit: int) -> List[OutboxEntry]:
        """PENDING and PROCESSING entries ordered by next_attempt_at."""
        raise NotImplementedError

    def claim(self, entry: OutboxEntry, *, claimed_at: datetime, claimed_by: str) -> bool:
        """Compare-and-set on (status, claimed_at, claimed_by); False when another worker won."""
        raise NotImplementedError

    def mark_completed(self, entry_id: str, *, delivered_at: datetime) -> None:
        raise NotImplementedError

    def reschedule(self, entry_id: str, *, attempts: int, next_attempt_at: datetime, last_error: str) -> None:
        raise NotImplementedError

    def move_to_dead_letter(self, entry: OutboxEntry, *, attempts: int, last_error: str, failed_at: datetime) -> None:
        raise NotImplementedError

    def delete_finished_before(self, cutoff: datetime) -> int:
        raise NotImplementedError

    def count_pending(self) -> int:
        raise NotImplementedError
