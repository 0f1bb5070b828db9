from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from ..clients.repository import ClientRepository
from ..common.datetime_utils import isoformat_or_none, now_utc
from ..core.constants import EMPLOYEE_CREATED_EVENT
from ..employees.model import Employee
from ..outbox.service import OutboxService

logger = logging.getLogger(__name__)


def employee_payload(employee: Employee, client) -> Dict[str, Any]:
    return {
        "employeeId": employee.employee_id,
        "firstName": employee.first_name,
        "lastName": employee.last_name,
        "email": employee.email,
        "clientId": employee.client_id,
        "clientName": client.name,
        "companyId": client.company_id,
        "entryDate": isoformat_or_none(employee.entry_date),
        "status": employee.status.value,
    }


class EmployeeNotificationService:
    """Turns created employees into outbox entries, one per client endpoint."""

    def __init__(self, clients: ClientRepository, outbox: OutboxService):
        self._clients = clients
        self._outbox = outbox

    def prepare_employees_created(self, employees: Sequence[Employee]) -> List[Dict[str, Any]]:
        clients = self._clients.get_many([e.client_id for e in employees])
        grouped: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
        for employee in employees:
            client = clients.get(employee.client_id)
            if client is None:
                logger.warning("Skipping notification for employee %s: client %s not found", employee.id, employee.client_id)
                continue
            endpoint = (client.notification_endpoint or "").strip()
            if not endpoint:
                continue
            grouped.setdefault(endpoint, []).append(employee_payload(employee, client))

        timestamp = now_utc().isoformat(timespec="milliseconds") + "Z"
        return [
            {"eventType": EMPLOYEE_CREATED_EVENT, "endpoint": endpoint, "employees": items, "timestamp": timestamp}
            for endpoint, items in grouped.items()
        ]

    def enqueue_notifications(self, employees: Sequence[Employee]) -> int:
        """Returns the number of outbox entries written. Failures are logged, never raised."""
        try:
            envelopes = self.prepare_employees_created(employees)
        except Exception:
            logger.exception("Failed to prepare employee notifications")
            return 0

        written = 0
        for envelope in envelopes:
            try:
                self._outbox.enqueue(
                    event_type=envelope["eventType"], destination=envelope["endpoint"], payload=envelope
                )
                written += 1
            except Exception:
                logger.exception("Failed to enqueue employee notification for %s", envelope["endpoint"])
        return written
