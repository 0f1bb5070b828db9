from __future__ import annotations

from typing import Any, Dict, List

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from ..database.mysql_entity_repository import MySQLEntityRepository
from .model import Assignment
from .repository import AssignmentRepository


def _to_assignment(row: Dict[str, Any]) -> Assignment:
    return Assignment(
        id=row["id"],
        employee_id=row["employee_id"],
        cost_center_id=row["cost_center_id"],
        client_id=row["client_id"],
        valid_from=row["valid_from"],
        valid_to=row.get("valid_to"),
        is_responsible=bool(row.get("is_responsible")),
        created_at=row.get("created_at"),
        created_by=row.get("created_by"),
        modified_at=row.get("modified_at"),
        modified_by=row.get("modified_by"),
    )


class MySQLAssignmentRepository(MySQLEntityRepository[Assignment], AssignmentRepository):
    table = "employee_cost_center_assignments"
    columns = (
        "id", "employee_id", "cost_center_id", "client_id", "valid_from", "valid_to", "is_responsible",
        "created_at", "created_by", "modified_at", "modified_by",
    )
    order_by = "valid_from DESC, id"
    entity_label = "Assignment"

    def __init__(self, conn_factory: DatabaseConnection):
        super().__init__(conn_factory, _to_assignment)

    def insert(self, assignment: Assignment) -> Assignment:
        self._insert_values(
            {
                "id": assignment.id,
                "employee_id": assignment.employee_id,
                "cost_center_id": assignment.cost_center_id,
                "client_id": assignment.client_id,
                "valid_from": assignment.valid_from,
                "valid_to": assignment.valid_to,
                "is_responsible": 1 if assignment.is_responsible else 0,
            },
            assignment.created_by,
        )
        return self.get_by_id(assignment.id)

    def update(self, assignment_id: str, changes: Dict[str, Any], *, modified_by: str) -> Assignment:
        if "is_responsible" in changes:
            changes = dict(changes, is_responsible=1 if changes["is_responsible"] else 0)
        return super().update(assignment_id, changes, modified_by=modified_by)

    def delete(self, assignment_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employee_cost_center_assignments WHERE id=%s", (assignment_id,))

    def _list_where(self, column: str, value: str) -> List[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select} WHERE {column}=%s ORDER BY valid_from DESC", (value,))
            return [_to_assignment(r) for r in fetchall(cur)]

    def list_for_employee(self, employee_id: str) -> List[Assignment]:
        return self._list_where("employee_id", employee_id)

    def list_for_cost_center(self, cost_center_id: str) -> List[Assignment]:
        return self._list_where("cost_center_id", cost_center_id)
