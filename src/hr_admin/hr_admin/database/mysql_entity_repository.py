from __future__ import annotations

from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import mysql.connector

from ..common.datetime_utils import now_utc
from ..core.exceptions import ConflictError, NotFoundError
from .connection import DatabaseConnection
from .mysql_base import (
    build_where,
    count_value,
    db_cursor,
    fetchall,
    fetchone,
    in_clause,
    insert_row,
    is_unique_violation,
    update_row,
)

T = TypeVar("T")


class MySQLEntityRepository(Generic[T]):
    """Shared plumbing for client-owned tables keyed by a CHAR(36) id.

    Subclasses set the table, the column list, the row mapper and the
    columns a free-text search looks at.
    """

    table: str = ""
    columns: Tuple[str, ...] = ()
    search_columns: Tuple[str, ...] = ()
    order_by: str = "id"
    entity_label: str = "Entity"
    conflict_message: str = "Duplicate entry."

    def __init__(self, conn_factory: DatabaseConnection, mapper: Callable[[Dict[str, Any]], T]):
        self._conn_factory = conn_factory
        self._mapper = mapper

    @property
    def _select(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table}"

    def get_by_id(self, entity_id: str) -> Optional[T]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select} WHERE id=%s", (entity_id,))
            row = fetchone(cur)
            return self._mapper(row) if row else None

    def get_many(self, ids: Sequence[str]) -> Dict[str, T]:
        unique_ids = sorted({i for i in ids if i})
        if not unique_ids:
            return {}
        placeholders, params = in_clause(unique_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select} WHERE id IN ({placeholders})", params)
            return {r["id"]: self._mapper(r) for r in fetchall(cur)}

    def _filters(
        self,
        client_ids: Optional[Sequence[str]],
        search: Optional[str],
        extra: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if client_ids is not None:
            placeholders, ids = in_clause(list(client_ids))
            clauses.append(f"client_id IN ({placeholders})")
            params.extend(ids)
        for column, value in (extra or {}).items():
            if value is None:
                continue
            clauses.append(f"{column}=%s")
            params.append(value)
        if search and self.search_columns:
            clauses.append("(" + " OR ".join(f"{c} LIKE %s" for c in self.search_columns) + ")")
            params.extend([f"%{search}%"] * len(self.search_columns))
        return build_where(clauses), params

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        **filters: Any,
    ) -> List[T]:
        if client_ids is not None and not client_ids:
            return []
        where, params = self._filters(client_ids, search, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{self._select} WHERE {where} ORDER BY {self.order_by} LIMIT %s OFFSET %s",
                (*params, int(limit), int(offset)),
            )
            return [self._mapper(r) for r in fetchall(cur)]

    def count(self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None, **filters: Any) -> int:
        if client_ids is not None and not client_ids:
            return 0
        where, params = self._filters(client_ids, search, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM {self.table} WHERE {where}", tuple(params))
            return count_value(fetchone(cur))

    def _insert_values(self, values: Dict[str, Any], created_by: Optional[str]) -> None:
        now = now_utc()
        row = dict(values, created_at=now, created_by=created_by, modified_at=now, modified_by=created_by)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                insert_row(cur, self.table, row)
        except mysql.connector.IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError(self.conflict_message) from e
            raise

    def update(self, entity_id: str, changes: Dict[str, Any], *, modified_by: str) -> T:
        values = dict(changes, modified_at=now_utc(), modified_by=modified_by)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                update_row(cur, self.table, entity_id, values)
        except mysql.connector.IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError(self.conflict_message) from e
            raise
        updated = self.get_by_id(entity_id)
        if updated is None:
            raise NotFoundError(f"{self.entity_label} not found.")
        return updated
