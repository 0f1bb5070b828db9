from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import count_value, db_cursor, fetchone, in_clause
from ..database.mysql_entity_repository import MySQLEntityRepository
from .model import CostCenter, CostCenterStatistics
from .repository import CostCenterRepository


def _to_cost_center(row: Dict[str, Any]) -> CostCenter:
    return CostCenter(
        id=row["id"],
        code=row["code"],
        name=row["name"],
        description=row.get("description"),
        client_id=row["client_id"],
        responsible_id=row["responsible_id"],
        valid_from=row.get("valid_from"),
        valid_to=row.get("valid_to"),
        created_at=row.get("created_at"),
        created_by=row.get("created_by"),
        modified_at=row.get("modified_at"),
        modified_by=row.get("modified_by"),
    )


class MySQLCostCenterRepository(MySQLEntityRepository[CostCenter], CostCenterRepository):
    table = "cost_centers"
    columns = (
        "id", "code", "name", "description", "client_id", "responsible_id", "valid_from", "valid_to",
        "created_at", "created_by", "modified_at", "modified_by",
    )
    search_columns = ("code", "name")
    order_by = "code"
    entity_label = "Cost center"
    conflict_message = "Cost center code already exists for this client."

    def __init__(self, conn_factory: DatabaseConnection):
        super().__init__(conn_factory, _to_cost_center)

    def get_by_code(self, client_id: str, code: str) -> Optional[CostCenter]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select} WHERE client_id=%s AND code=%s", (client_id, code))
            row = fetchone(cur)
            return _to_cost_center(row) if row else None

    def insert(self, cost_center: CostCenter) -> CostCenter:
        self._insert_values(
            {
                "id": cost_center.id,
                "code": cost_center.code,
                "name": cost_center.name,
                "description": cost_center.description,
                "client_id": cost_center.client_id,
                "responsible_id": cost_center.responsible_id,
                "valid_from": cost_center.valid_from,
                "valid_to": cost_center.valid_to,
            },
            cost_center.created_by,
        )
        return self.get_by_id(cost_center.id)

    def delete(self, cost_center_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE employees SET cost_center_id=NULL WHERE cost_center_id=%s", (cost_center_id,))
            cur.execute("DELETE FROM employee_cost_center_assignments WHERE cost_center_id=%s", (cost_center_id,))
            cur.execute("DELETE FROM cost_centers WHERE id=%s", (cost_center_id,))

    def count_related(self, cost_center_id: str) -> Dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM employees WHERE cost_center_id=%s", (cost_center_id,))
            employees = count_value(fetchone(cur))
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM employee_cost_center_assignments WHERE cost_center_id=%s",
                (cost_center_id,),
            )
            assignments = count_value(fetchone(cur))
        return {"employee_count": employees, "assignment_count": assignments}

    def count_responsible_for(self, employee_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM cost_centers WHERE responsible_id=%s", (employee_id,))
            return count_value(fetchone(cur))

    def statistics(self, *, client_ids: Optional[Sequence[str]], today: date, horizon: date) -> CostCenterStatistics:
        if client_ids is not None and not client_ids:
            return CostCenterStatistics()
        where, params = "1=1", []
        if client_ids is not None:
            placeholders, ids = in_clause(list(client_ids))
            where, params = f"client_id IN ({placeholders})", list(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN responsible_id IS NOT NULL THEN 1 ELSE 0 END) AS with_responsible,
                       SUM(CASE WHEN valid_to IS NOT NULL AND valid_to >= %s AND valid_to <= %s
                                THEN 1 ELSE 0 END) AS expiring_soon
                FROM cost_centers
                WHERE {where}
                """,
                (today, horizon, *params),
            )
            row = fetchone(cur) or {}
        return CostCenterStatistics(
            total=count_value(row, "total"),
            with_responsible=count_value(row, "with_responsible"),
            expiring_soon=count_value(row, "expiring_soon"),
        )
