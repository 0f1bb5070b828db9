from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import now_utc
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
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
from .model import Client
from .repository import ClientRepository

_COLUMNS = (
    "id, company_id, name, country_code, notification_endpoint, "
    "created_at, created_by, modified_at, modified_by"
)


def _to_client(row: Dict[str, Any]) -> Client:
    return Client(
        id=row["id"],
        company_id=row["company_id"],
        name=row["name"],
        country_code=row.get("country_code"),
        notification_endpoint=row.get("notification_endpoint"),
        created_at=row.get("created_at"),
        created_by=row.get("created_by"),
        modified_at=row.get("modified_at"),
        modified_by=row.get("modified_by"),
    )


class MySQLClientRepository(ClientRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, client_id: str) -> Optional[Client]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clients WHERE id=%s", (client_id,))
            row = fetchone(cur)
            return _to_client(row) if row else None

    def get_by_company_id(self, company_id: str) -> Optional[Client]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clients WHERE company_id=%s", (company_id,))
            row = fetchone(cur)
            return _to_client(row) if row else None

    def get_many(self, client_ids: Sequence[str]) -> Dict[str, Client]:
        ids = sorted({c for c in client_ids if c})
        if not ids:
            return {}
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clients WHERE id IN ({placeholders})", params)
            return {r["id"]: _to_client(r) for r in fetchall(cur)}

    def ids_for_company_codes(self, company_codes: Sequence[str]) -> List[str]:
        codes = [c for c in company_codes if c]
        if not codes:
            return []
        placeholders, params = in_clause(codes)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id FROM clients WHERE company_id IN ({placeholders})", params)
            return [r["id"] for r in fetchall(cur)]

    @staticmethod
    def _filters(client_ids: Optional[Sequence[str]], search: Optional[str]):
        clauses: list[str] = []
        params: list[Any] = []
        if client_ids is not None:
            placeholders, ids = in_clause(list(client_ids))
            clauses.append(f"id IN ({placeholders})")
            params.extend(ids)
        if search:
            clauses.append("(company_id LIKE %s OR name LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        return build_where(clauses), params

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Client]:
        if client_ids is not None and not client_ids:
            return []
        where, params = self._filters(client_ids, search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM clients WHERE {where} ORDER BY company_id LIMIT %s OFFSET %s",
                (*params, int(limit), int(offset)),
            )
            return [_to_client(r) for r in fetchall(cur)]

    def count(self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None) -> int:
        if client_ids is not None and not client_ids:
            return 0
        where, params = self._filters(client_ids, search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM clients WHERE {where}", tuple(params))
            return count_value(fetchone(cur))

    def insert(self, client: Client) -> Client:
        now = now_utc()
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                insert_row(
                    cur,
                    "clients",
                    {
                        "id": client.id,
                        "company_id": client.company_id,
                        "name": client.name,
                        "country_code": client.country_code,
                        "notification_endpoint": client.notification_endpoint,
                        "created_at": now,
                        "created_by": client.created_by,
                        "modified_at": now,
                        "modified_by": client.created_by,
                    },
                )
        except mysql.connector.IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError(f"Company ID {client.company_id} already exists.") from e
            raise
        return self.get_by_id(client.id)

    def update(self, client_id: str, changes: Dict[str, Any], *, modified_by: str) -> Client:
        values = dict(changes, modified_at=now_utc(), modified_by=modified_by)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                update_row(cur, "clients", client_id, values)
        except mysql.connector.IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError("Company ID already exists.") from e
            raise
        updated = self.get_by_id(client_id)
        if not updated:
            raise NotFoundError("Client not found.")
        return updated

    def delete(self, client_id: str) -> None:
        # explicit order: employees reference locations without a cascade
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employee_cost_center_assignments WHERE client_id=%s", (client_id,))
            cur.execute("UPDATE employees SET manager_id=NULL, cost_center_id=NULL WHERE client_id=%s", (client_id,))
            cur.execute("DELETE FROM cost_centers WHERE client_id=%s", (client_id,))
            cur.execute("DELETE FROM employees WHERE client_id=%s", (client_id,))
            cur.execute("DELETE FROM locations WHERE client_id=%s", (client_id,))
            cur.execute("DELETE FROM employee_id_counters WHERE client_id=%s", (client_id,))
            cur.execute("DELETE FROM clients WHERE id=%s", (client_id,))

    def count_related(self, client_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        with db_cursor(self._conn_factory) as (_, cur):
            for key, table in (
                ("employee_count", "employees"),
                ("cost_center_count", "cost_centers"),
                ("location_count", "locations"),
                ("assignment_count", "employee_cost_center_assignments"),
            ):
                cur.execute(f"SELECT COUNT(*) AS cnt FROM {table} WHERE client_id=%s", (client_id,))
                counts[key] = count_value(fetchone(cur))
        return counts
