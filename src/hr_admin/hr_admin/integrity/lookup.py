from __future__ import annotations

from typing import Any, Dict, Protocol, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause

# entity -> columns the validator needs
RELATION_COLUMNS: Dict[str, tuple[str, ...]] = {
    "employees": ("id", "client_id", "manager_id", "cost_center_id", "location_id"),
    "cost_centers": ("id", "client_id", "responsible_id"),
    "locations": ("id", "client_id"),
}


class IntegrityLookup(Protocol):
    def load(self, entity: str, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        """Rows keyed by id, restricted to RELATION_COLUMNS[entity]."""
        raise NotImplementedError


class MySQLIntegrityLookup(IntegrityLookup):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load(self, entity: str, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        columns = RELATION_COLUMNS.get(entity)
        if columns is None:
            raise ValueError(f"Unknown entity: {entity}")
        unique_ids = sorted({i for i in ids if i})
        if not unique_ids:
            return {}
        placeholders, params = in_clause(unique_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {', '.join(columns)} FROM {entity} WHERE id IN ({placeholders})", params)
            return {r["id"]: r for r in fetchall(cur)}
