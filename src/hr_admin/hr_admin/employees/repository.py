from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .model import Employee, EmployeeStatistics


class EmployeeRepository(Protocol):
    """Repository interface for Employee."""

    def get_by_id(self, employee_pk: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_many(self, ids: Sequence[str]) -> Dict[str, Employee]:
        raise NotImplementedError

    def find_by_employee_id(self, client_id: str, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        status: Optional[str] = None,
    ) -> List[Employee]:
        raise NotImplementedError

    def count(
        self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None, status: Optional[str] = None
    ) -> int:
        raise NotImplementedError

    def insert(self, employee: Employee) -> Employee:
        """Raises ConflictError when (client_id, employee_id) is already taken."""
        raise NotImplementedError

    def update(self, employee_pk: str, changes: Dict[str, Any], *, modified_by: str) -> Employee:
        raise NotImplementedError

    def delete(self, employee_pk: str) -> None:
        """Clears manager_id on direct reports, then removes the employee and its assignments."""
        raise NotImplementedError

    def set_manager(self, employee_pks: Sequence[str], manager_pk: str, *, modified_by: str) -> int:
        raise NotImplementedError

    def list_former_employees(self, *, before: date, client_ids: Optional[Sequence[str]]) -> List[Employee]:
        """Employees with exit_date < before that have not been anonymized yet."""
        raise NotImplementedError

    def anonymize(
        self, replacements: Sequence[Tuple[str, str]], *, placeholder: str, anonymized_at: datetime, modified_by: str
    ) -> int:
        """Apply (employee pk, anonymized email) pairs in one transaction."""
        raise NotImplementedError

    def statistics(
        self, *, client_ids: Optional[Sequence[str]], today: date, since: date, horizon: date
    ) -> EmployeeStatistics:
        raise NotImplementedError

    def list_active(self, *, today: date, limit: Optional[int] = None, offset: int = 0) -> List[Employee]:
        """Active employees (entered, not yet exited) ordered by last name, first name."""
        raise NotImplementedError


class EmployeeIdCounterRepository(Protocol):
    def next_counter(self, client_id: str) -> int:
        """Lock, increment and persist the client's counter; returns the new value."""
        raise NotImplementedError
