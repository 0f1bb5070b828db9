"""Read model for the machine-to-machine active employee export."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..clients.repository import ClientRepository
from ..common.datetime_utils import isoformat_or_none, today
from ..cost_centers.repository import CostCenterRepository
from .repository import EmployeeRepository


class ActiveEmployeeExportService:
    def __init__(self, employees: EmployeeRepository, clients: ClientRepository, cost_centers: CostCenterRepository):
        self._employees = employees
        self._clients = clients
        self._cost_centers = cost_centers

    def list_active_employees(self, *, limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        employees = self._employees.list_active(today=today(), limit=limit, offset=offset)
        clients = self._clients.get_many([e.client_id for e in employees])
        cost_centers = self._cost_centers.get_many([e.cost_center_id for e in employees if e.cost_center_id])
        managers = self._employees.get_many([e.manager_id for e in employees if e.manager_id])

        rows: List[Dict[str, Any]] = []
        for e in employees:
            client = clients.get(e.client_id)
            cost_center = cost_centers.get(e.cost_center_id) if e.cost_center_id else None
            manager = managers.get(e.manager_id) if e.manager_id else None
            rows.append(
                {
                    "id": e.id,
                    "externalId": e.employee_id,
                    "firstName": e.first_name,
                    "lastName": e.last_name,
                    "email": e.email,
                    "hireDate": isoformat_or_none(e.entry_date),
                    "terminationDate": isoformat_or_none(e.exit_date),
                    "status": e.status.value,
                    "client": {"id": client.id, "companyId": client.company_id, "name": client.name}
                    if client
                    else None,
                    "costCenter": {"id": cost_center.id, "code": cost_center.code, "name": cost_center.name}
                    if cost_center
                    else None,
                    "manager": {
                        "id": manager.id,
                        "externalId": manager.employee_id,
                        "firstName": manager.first_name,
                        "lastName": manager.last_name,
                        "email": manager.email,
                    }
                    if manager
                    else None,
                }
            )
        return rows
