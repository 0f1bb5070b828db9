from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..clients.repository import ClientRepository
from ..clients.scope import allowed_client_ids, is_in_scope
from ..common.concurrency import ConcurrencyToken, ensure_optimistic_concurrency
from ..common.datetime_utils import is_active_on, ranges_overlap, today
from ..common.normalization import normalize_identifier
from ..common.validators import optional_date, require_date_order
from ..core.enums import WriteEvent
from ..core.exceptions import NotFoundError, ValidationError
from ..cost_centers.model import CostCenter
from ..cost_centers.repository import CostCenterRepository
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..users.model import UserContext
from ..users.service import ensure_user_authorized_for_company, require_write_access
from .model import ASSIGNMENT_WRITABLE_FIELDS, Assignment
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


class AssignmentService:
    """Employee to cost center assignments and the responsibility they carry."""

    def __init__(
        self,
        assignments: AssignmentRepository,
        employees: EmployeeRepository,
        cost_centers: CostCenterRepository,
        clients: ClientRepository,
    ):
        self._assignments = assignments
        self._employees = employees
        self._cost_centers = cost_centers
        self._clients = clients

    # -------- Reads --------
    def list_assignments(
        self,
        user: UserContext,
        *,
        client_id: Optional[str] = None,
        employee_id: Optional[str] = None,
        cost_center_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Assignment], int]:
        scope = allowed_client_ids(user, self._clients)
        if client_id:
            scope = [client_id] if is_in_scope(client_id, scope) else []
        filters = {"employee_id": employee_id, "cost_center_id": cost_center_id}
        items = self._assignments.list(client_ids=scope, limit=limit, offset=offset, **filters)
        return items, self._assignments.count(client_ids=scope, **filters)

    def get_assignment(self, user: UserContext, assignment_id: str) -> Assignment:
        assignment = self._assignments.get_by_id(assignment_id)
        if not assignment or not is_in_scope(assignment.client_id, allowed_client_ids(user, self._clients)):
            raise NotFoundError("Assignment not found.")
        return assignment

    # -------- Validation --------
    @staticmethod
    def _validate_within_cost_center(valid_from: date, valid_to: Optional[date], cost_center: CostCenter) -> None:
        if cost_center.valid_from and valid_from < cost_center.valid_from:
            raise ValidationError(
                f"Assignment cannot start before cost center validity period ({cost_center.valid_from.isoformat()})"
            )
        if cost_center.valid_to:
            if not valid_to:
                raise ValidationError(
                    f"Assignment must have an end date as cost center validity ends on {cost_center.valid_to.isoformat()}"
                )
            if valid_to > cost_center.valid_to:
                raise ValidationError(
                    f"Assignment cannot end after cost center validity period ({cost_center.valid_to.isoformat()})"
                )

    def _validate_no_overlap(
        self, employee: Employee, valid_from: date, valid_to: Optional[date], exclude_id: Optional[str]
    ) -> None:
        if employee.is_manager:
            return
        for other in self._assignments.list_for_employee(employee.id):
            if other.id == exclude_id:
                continue
            if ranges_overlap(valid_from, valid_to, other.valid_from, other.valid_to):
                raise ValidationError(
                    "Non-manager employees can only have one active cost center assignment. "
                    f"Conflicting assignment exists for period: {other.describe_range()}"
                )

    def prepare_assignment_upsert(
        self,
        event: WriteEvent,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        target_id: Optional[str] = None,
        token: Optional[ConcurrencyToken] = None,
    ) -> Dict[str, Any]:
        existing: Optional[Assignment] = None
        if event == WriteEvent.UPDATE:
            existing = self._assignments.get_by_id(target_id) if target_id else None
            ensure_optimistic_concurrency(existing.modified_at if existing else None, token, entity="Assignment")

        changes: Dict[str, Any] = {k: data[k] for k in ASSIGNMENT_WRITABLE_FIELDS if k in data}

        def merged(key: str) -> Any:
            if key in changes:
                return changes[key]
            return getattr(existing, key) if existing else None

        for key, label in (("employee_id", "Employee"), ("cost_center_id", "Cost center"), ("client_id", "Client")):
            value = normalize_identifier(merged(key))
            if not value:
                raise ValidationError(f"{label} is required.")
            if key in changes or event == WriteEvent.CREATE:
                changes[key] = value

        valid_from = optional_date(merged("valid_from"), "Valid from")
        if valid_from is None:
            raise ValidationError("Valid from is required.")
        valid_to = optional_date(merged("valid_to"), "Valid to")
        require_date_order(valid_from, valid_to, "Valid from must be on or before valid to.")
        if "valid_from" in changes or event == WriteEvent.CREATE:
            changes["valid_from"] = valid_from
        if "valid_to" in changes:
            changes["valid_to"] = valid_to

        is_responsible = _parse_flag(merged("is_responsible") or False)
        if "is_responsible" in changes or event == WriteEvent.CREATE:
            changes["is_responsible"] = is_responsible

        client_id = normalize_identifier(merged("client_id"))
        client = self._clients.get_by_id(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found.")
        ensure_user_authorized_for_company(user, client.company_id)

        employee = self._employees.get_by_id(normalize_identifier(merged("employee_id")))
        if not employee:
            raise NotFoundError("Employee not found.")
        if employee.client_id != client_id:
            raise ValidationError("Employee does not belong to the specified client.")

        cost_center = self._cost_centers.get_by_id(normalize_identifier(merged("cost_center_id")))
        if not cost_center:
            raise NotFoundError("Cost center not found.")
        if cost_center.client_id != client_id:
            raise ValidationError("Cost center does not belong to the specified client.")

        self._validate_within_cost_center(valid_from, valid_to, cost_center)
        if is_responsible and not employee.is_manager:
            raise ValidationError("Only managers can be marked as responsible for a cost center.")
        self._validate_no_overlap(employee, valid_from, valid_to, existing.id if existing else None)
        return changes

    # -------- Responsibility --------
    def apply_responsibility(self, assignment: Assignment, *, modified_by: str) -> None:
        """An active responsible assignment makes its employee the cost center's responsible and manager."""
        if not assignment.is_responsible or not is_active_on(assignment.valid_from, assignment.valid_to, today()):
            return

        self._cost_centers.update(
            assignment.cost_center_id, {"responsible_id": assignment.employee_id}, modified_by=modified_by
        )
        reports = [
            other.employee_id
            for other in self._assignments.list_for_cost_center(assignment.cost_center_id)
            if other.employee_id != assignment.employee_id
            and ranges_overlap(assignment.valid_from, assignment.valid_to, other.valid_from, other.valid_to)
        ]
        updated = self._employees.set_manager(sorted(set(reports)), assignment.employee_id, modified_by=modified_by)
        logger.info(
            "Employee %s is now responsible for cost center %s (%s report(s) updated)",
            assignment.employee_id,
            assignment.cost_center_id,
            updated,
        )

    def reassign_responsibility_after_delete(self, deleted: Assignment, *, modified_by: str) -> None:
        if not deleted.is_responsible:
            return
        day = today()
        candidates = [
            other
            for other in self._assignments.list_for_cost_center(deleted.cost_center_id)
            if other.id != deleted.id and other.is_responsible and is_active_on(other.valid_from, other.valid_to, day)
        ]
        if not candidates:
            return
        successor = max(candidates, key=lambda a: a.valid_from)
        self._cost_centers.update(
            deleted.cost_center_id, {"responsible_id": successor.employee_id}, modified_by=modified_by
        )
        logger.info("Cost center %s responsibility moved to %s", deleted.cost_center_id, successor.employee_id)

    # -------- Writes --------
    def create_assignment(self, data: Mapping[str, Any], *, user: UserContext) -> Assignment:
        require_write_access(user)
        changes = self.prepare_assignment_upsert(WriteEvent.CREATE, data, user=user)
        assignment = self._assignments.insert(
            Assignment(
                id=str(uuid.uuid4()),
                employee_id=changes["employee_id"],
                cost_center_id=changes["cost_center_id"],
                client_id=changes["client_id"],
                valid_from=changes["valid_from"],
                valid_to=changes.get("valid_to"),
                is_responsible=changes["is_responsible"],
                created_by=user.username,
            )
        )
        self.apply_responsibility(assignment, modified_by=user.username)
        return assignment

    def update_assignment(
        self,
        assignment_id: str,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        token: Optional[ConcurrencyToken] = None,
    ) -> Assignment:
        require_write_access(user)
        changes = self.prepare_assignment_upsert(WriteEvent.UPDATE, data, user=user, target_id=assignment_id, token=token)
        assignment = self._assignments.update(assignment_id, changes, modified_by=user.username)
        self.apply_responsibility(assignment, modified_by=user.username)
        return assignment

    def delete_assignment(
        self, assignment_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> None:
        require_write_access(user)
        assignment = self._assignments.get_by_id(assignment_id)
        ensure_optimistic_concurrency(assignment.modified_at if assignment else None, token, entity="Assignment")
        client = self._clients.get_by_id(assignment.client_id)
        if not client:
            raise NotFoundError(f"Client {assignment.client_id} not found.")
        ensure_user_authorized_for_company(user, client.company_id)

        self._assignments.delete(assignment.id)
        self.reassign_responsibility_after_delete(assignment, modified_by=user.username)
