from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .model import CostCenter, CostCenterStatistics


class CostCenterRepository(Protocol):
    def get_by_id(self, cost_center_id: str) -> Optional[CostCenter]:
        raise NotImplementedError

    def get_many(self, ids: Sequence[str]) -> Dict[str, CostCenter]:
        raise NotImplementedError

    def get_by_code(self, client_id: str, code: str) -> Optional[CostCenter]:
        raise NotImplementedError

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CostCenter]:
        raise NotImplementedError

    def count(self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None) -> int:
        raise NotImplementedError

    def insert(self, cost_center: CostCenter) -> CostCenter:
        raise NotImplementedError

    def update(self, cost_center_id: str, changes: Dict[str, Any], *, modified_by: str) -> CostCenter:
        raise NotImplementedError

    def delete(self, cost_center_id: str) -> None:
        """Detaches employees (cost_center_id = NULL) and drops the assignments, then the cost center."""
        raise NotImplementedError

    def count_related(self, cost_center_id: str) -> Dict[str, int]:
        raise NotImplementedError

    def count_responsible_for(self, employee_id: str) -> int:
        raise NotImplementedError

    def statistics(self, *, client_ids: Optional[Sequence[str]], today: date, horizon: date) -> CostCenterStatistics:
        raise NotImplementedError
