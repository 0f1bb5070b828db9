from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from .model import Assignment


class AssignmentRepository(Protocol):
    def get_by_id(self, assignment_id: str) -> Optional[Assignment]:
        raise NotImplementedError

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        employee_id: Optional[str] = None,
        cost_center_id: Optional[str] = None,
    ) -> List[Assignment]:
        raise NotImplementedError

    def count(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        employee_id: Optional[str] = None,
        cost_center_id: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def insert(self, assignment: Assignment) -> Assignment:
        raise NotImplementedError

    def update(self, assignment_id: str, changes: Dict[str, Any], *, modified_by: str) -> Assignment:
        raise NotImplementedError

    def delete(self, assignment_id: str) -> None:
        raise NotImplementedError

    def list_for_employee(self, employee_id: str) -> List[Assignment]:
        raise NotImplementedError

    def list_for_cost_center(self, cost_center_id: str) -> List[Assignment]:
        raise NotImplementedError
