from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Sequence[Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Placeholders for ``col IN (...)``. Callers must not pass an empty sequence."""
    if not values:
        raise ValueError("in_clause requires at least one value")
    return ", ".join(["%s"] * len(values)), tuple(values)


def build_where(clauses: Iterable[str]) -> str:
    parts = [c for c in clauses if c]
    return " AND ".join(parts) if parts else "1=1"


def is_unique_violation(error: BaseException) -> bool:
    return isinstance(error, mysql.connector.IntegrityError) and getattr(error, "errno", None) == errorcode.ER_DUP_ENTRY


def count_value(row: Optional[Dict[str, Any]], key: str = "cnt") -> int:
    if not row:
        return 0
    return int(row.get(key) or 0)


def insert_row(cur, table: str, values: Dict[str, Any]) -> None:
    columns = ", ".join(values)
    placeholders = ", ".join(["%s"] * len(values))
    cur.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(values.values()))


def update_row(cur, table: str, row_id: str, changes: Dict[str, Any]) -> int:
    """UPDATE by primary key. Column names come from service whitelists, never from user input."""
    if not changes:
        return 0
    assignments = ", ".join(f"{column}=%s" for column in changes)
    cur.execute(f"UPDATE {table} SET {assignments} WHERE id=%s", (*changes.values(), row_id))
    return int(cur.rowcount or 0)
