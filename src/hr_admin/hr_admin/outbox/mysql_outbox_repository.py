from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List

from ..core.enums import OutboxStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import count_value, db_cursor, fetchall, fetchone, insert_row
from .model import OutboxEntry
from .repository import OutboxRepository

_COLUMNS = (
    "id, event_type, destination, payload, status, attempts, next_attempt_at, claimed_at, claimed_by, "
    "last_error, delivered_at, created_at, modified_at"
)


def _to_entry(row: Dict[str, Any]) -> OutboxEntry:
    return OutboxEntry(
        id=row["id"],
        event_type=row["event_type"],
        destination=row["destination"],
        payload=row["payload"],
        status=OutboxStatus(row["status"]),
        attempts=int(row.get("attempts") or 0),
        next_attempt_at=row.get("next_attempt_at"),
        claimed_at=row.get("claimed_at"),
        claimed_by=row.get("claimed_by"),
        last_error=row.get("last_error"),
        delivered_at=row.get("delivered_at"),
        created_at=row.get("created_at"),
        modified_at=row.get("modified_at"),
    )


class MySQLOutboxRepository(OutboxRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(self, entry: OutboxEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            insert_row(
                cur,
                "employee_notification_outbox",
                {
                    "id": entry.id,
                    "event_type": entry.event_type,
                    "destination": entry.destination,
                    "payload": entry.payload,
                    "status": entry.status.value,
                    "attempts": entry.attempts,
                    "next_attempt_at": entry.next_attempt_at,
                    "created_at": entry.created_at,
                    "modified_at": entry.created_at,
                },
            )

    def release_expired_claims(self, *, claimed_before: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_notification_outbox
                SET status=%s, claimed_at=NULL, claimed_by=NULL
                WHERE status=%s AND claimed_at < %s
                """,
                (OutboxStatus.PENDING.value, OutboxStatus.PROCESSING.value, claimed_before),
            )
            return int(cur.rowcount or 0)

    def list_candidates(self, *, limit: int) -> List[OutboxEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employee_notification_outbox
                WHERE status IN (%s, %s)
                ORDER BY next_attempt_at
                LIMIT %s
                """,
                (OutboxStatus.PENDING.value, OutboxStatus.PROCESSING.value, int(limit)),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def claim(self, entry: OutboxEntry, *, claimed_at: datetime, claimed_by: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_notification_outbox
                SET status=%s, claimed_at=%s, claimed_by=%s
                WHERE id=%s AND status=%s AND claimed_at <=> %s AND claimed_by <=> %s
                """,
                (
                    OutboxStatus.PROCESSING.value,
                    claimed_at,
                    claimed_by,
                    entry.id,
                    entry.status.value,
                    entry.claimed_at,
                    entry.claimed_by,
                ),
            )
            return int(cur.rowcount or 0) == 1

    def mark_completed(self, entry_id: str, *, delivered_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_notification_outbox
                SET status=%s, delivered_at=%s, claimed_at=NULL, claimed_by=NULL, last_error=NULL
                WHERE id=%s
                """,
                (OutboxStatus.COMPLETED.value, delivered_at, entry_id),
            )

    def reschedule(self, entry_id: str, *, attempts: int, next_attempt_at: datetime, last_error: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_notification_outbox
                SET status=%s, attempts=%s, next_attempt_at=%s, last_error=%s, claimed_at=NULL, claimed_by=NULL
                WHERE id=%s
                """,
                (OutboxStatus.PENDING.value, int(attempts), next_attempt_at, last_error, entry_id),
            )

    def move_to_dead_letter(self, entry: OutboxEntry, *, attempts: int, last_error: str, failed_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            insert_row(
                cur,
                "employee_notification_dlq",
                {
                    "id": str(uuid.uuid4()),
                    "original_id": entry.id,
                    "event_type": entry.event_type,
                    "destination": entry.destination,
                    "payload": entry.payload,
                    "attempts": int(attempts),
                    "last_error": last_error,
                    "failed_at": failed_at,
                },
            )
            cur.execute("DELETE FROM employee_notification_outbox WHERE id=%s", (entry.id,))

    def delete_finished_before(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM employee_notification_outbox
                WHERE status IN (%s, %s) AND modified_at < %s
                """,
                (OutboxStatus.COMPLETED.value, OutboxStatus.FAILED.value, cutoff),
            )
            return int(cur.rowcount or 0)

    def count_pending(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM employee_notification_outbox WHERE status IN (%s, %s)",
                (OutboxStatus.PENDING.value, OutboxStatus.PROCESSING.value),
            )
            return count_value(fetchone(cur))
