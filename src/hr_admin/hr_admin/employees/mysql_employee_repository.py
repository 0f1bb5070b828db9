from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mysql.connector

from ..core.enums import EmployeeStatus, EmploymentType
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import count_value, db_cursor, fetchall, fetchone, in_clause, is_unique_violation
from ..database.mysql_entity_repository import MySQLEntityRepository
from .model import Employee, EmployeeStatistics
from .repository import EmployeeIdCounterRepository, EmployeeRepository


def _to_employee(row: Dict[str, Any]) -> Employee:
    return Employee(
        id=row["id"],
        employee_id=row["employee_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        location_id=row.get("location_id"),
        position_level=row.get("position_level"),
        entry_date=row["entry_date"],
        exit_date=row.get("exit_date"),
        status=EmployeeStatus(row["status"]),
        employment_type=EmploymentType(row.get("employment_type") or EmploymentType.INTERNAL.value),
        is_manager=bool(row.get("is_manager")),
        anonymized_at=row.get("anonymized_at"),
        client_id=row["client_id"],
        manager_id=row.get("manager_id"),
        cost_center_id=row.get("cost_center_id"),
        created_at=row.get("created_at"),
        created_by=row.get("created_by"),
        modified_at=row.get("modified_at"),
        modified_by=row.get("modified_by"),
    )


def _scope(client_ids: Optional[Sequence[str]]) -> Tuple[str, List[Any]]:
    if client_ids is None:
        return "1=1", []
    placeholders, ids = in_clause(list(client_ids))
    return f"client_id IN ({placeholders})", list(ids)


class MySQLEmployeeRepository(MySQLEntityRepository[Employee], EmployeeRepository):
    table = "employees"
    columns = (
        "id", "employee_id", "first_name", "last_name", "email", "location_id", "position_level",
        "entry_date", "exit_date", "status", "employment_type", "is_manager", "anonymized_at",
        "client_id", "manager_id", "cost_center_id", "created_at", "created_by", "modified_at", "modified_by",
    )
    search_columns = ("employee_id", "first_name", "last_name", "email")
    order_by = "last_name, first_name"
    entity_label = "Employee"
    conflict_message = "Employee ID already exists for this client."

    def __init__(self, conn_factory: DatabaseConnection):
        super().__init__(conn_factory, _to_employee)

    def find_by_employee_id(self, client_id: str, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select} WHERE client_id=%s AND employee_id=%s", (client_id, employee_id))
            row = fetchone(cur)
            return _to_employee(row) if row else None

    def insert(self, employee: Employee) -> Employee:
        self._insert_values(
            {
                "id": employee.id,
                "employee_id": employee.employee_id,
                "first_name": employee.first_name,
                "last_name": employee.last_name,
                "email": employee.email,
                "location_id": employee.location_id,
                "position_level": employee.position_level,
                "entry_date": employee.entry_date,
                "exit_date": employee.exit_date,
                "status": employee.status.value,
                "employment_type": employee.employment_type.value,
                "is_manager": 1 if employee.is_manager else 0,
                "client_id": employee.client_id,
                "manager_id": employee.manager_id,
                "cost_center_id": employee.cost_center_id,
            },
            employee.created_by,
        )
        return self.get_by_id(employee.id)

    def delete(self, employee_pk: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE employees SET manager_id=NULL WHERE manager_id=%s", (employee_pk,))
            cur.execute("DELETE FROM employee_cost_center_assignments WHERE employee_id=%s", (employee_pk,))
            cur.execute("DELETE FROM employees WHERE id=%s", (employee_pk,))

    def set_manager(self, employee_pks: Sequence[str], manager_pk: str, *, modified_by: str) -> int:
        ids = [i for i in employee_pks if i and i != manager_pk]
        if not ids:
            return 0
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE employees
                SET manager_id=%s, modified_at=UTC_TIMESTAMP(6), modified_by=%s
                WHERE id IN ({placeholders})
                """,
                (manager_pk, modified_by, *params),
            )
            return int(cur.rowcount or 0)

    def list_former_employees(self, *, before: date, client_ids: Optional[Sequence[str]]) -> List[Employee]:
        if client_ids is not None and not client_ids:
            return []
        where, params = _scope(client_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {self._select}
                WHERE exit_date IS NOT NULL AND exit_date < %s AND anonymized_at IS NULL AND {where}
                """,
                (before, *params),
            )
            return [_to_employee(r) for r in fetchall(cur)]

    def anonymize(
        self, replacements: Sequence[Tuple[str, str]], *, placeholder: str, anonymized_at: datetime, modified_by: str
    ) -> int:
        if not replacements:
            return 0
        updated = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for employee_pk, email in replacements:
                cur.execute(
                    """
                    UPDATE employees
                    SET first_name=%s, last_name=%s, email=%s, location_id=NULL, position_level=NULL,
                        status=%s, anonymized_at=%s, modified_at=%s, modified_by=%s
                    WHERE id=%s AND anonymized_at IS NULL
                    """,
                    (
                        placeholder,
                        placeholder,
                        email,
                        EmployeeStatus.INACTIVE.value,
                        anonymized_at,
                        anonymized_at,
                        modified_by,
                        employee_pk,
                    ),
                )
                updated += int(cur.rowcount or 0)
        return updated

    def statistics(
        self, *, client_ids: Optional[Sequence[str]], today: date, since: date, horizon: date
    ) -> EmployeeStatistics:
        if client_ids is not None and not client_ids:
            return EmployeeStatistics()
        where, params = _scope(client_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status='active' THEN 1 ELSE 0 END) AS active,
                       SUM(CASE WHEN status='inactive' THEN 1 ELSE 0 END) AS inactive,
                       SUM(CASE WHEN employment_type='internal' THEN 1 ELSE 0 END) AS internal,
                       SUM(CASE WHEN employment_type='external' THEN 1 ELSE 0 END) AS external,
                       SUM(CASE WHEN is_manager=1 THEN 1 ELSE 0 END) AS managers,
                       SUM(CASE WHEN entry_date >= %s AND entry_date <= %s THEN 1 ELSE 0 END) AS recent_hires,
                       SUM(CASE WHEN exit_date IS NOT NULL AND exit_date >= %s AND exit_date <= %s
                                THEN 1 ELSE 0 END) AS upcoming_exits
                FROM employees
                WHERE {where}
                """,
                (since, today, today, horizon, *params),
            )
            row = fetchone(cur) or {}
        return EmployeeStatistics(
            **{key: count_value(row, key) for key in EmployeeStatistics.__dataclass_fields__}
        )

    def list_active(self, *, today: date, limit: Optional[int] = None, offset: int = 0) -> List[Employee]:
        sql = (
            f"{self._select} WHERE status=%s AND entry_date <= %s AND (exit_date IS NULL OR exit_date >= %s) "
            "ORDER BY last_name, first_name"
        )
        params: List[Any] = [EmployeeStatus.ACTIVE.value, today, today]
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_employee(r) for r in fetchall(cur)]


class MySQLEmployeeIdCounterRepository(EmployeeIdCounterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def next_counter(self, client_id: str) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "SELECT last_counter FROM employee_id_counters WHERE client_id=%s FOR UPDATE",
                    (client_id,),
                )
                row = fetchone(cur)
                if row is None:
                    # a concurrent first insert surfaces as a unique violation
                    cur.execute(
                        "INSERT INTO employee_id_counters (client_id, last_counter) VALUES (%s, 1)",
                        (client_id,),
                    )
                    return 1
                value = int(row["last_counter"] or 0) + 1
                cur.execute(
                    "UPDATE employee_id_counters SET last_counter=%s WHERE client_id=%s",
                    (value, client_id),
                )
                return value
        except mysql.connector.IntegrityError as e:
            if is_unique_violation(e):
                raise ConflictError("Employee ID counter was initialized concurrently.") from e
            raise
