from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..clients.model import Client
from ..clients.repository import ClientRepository
from ..clients.scope import allowed_client_ids, is_in_scope
from ..common.concurrency import ConcurrencyToken, ensure_optimistic_concurrency
from ..common.datetime_utils import days_ago, days_from_now, today
from ..common.normalization import identifiers_match, is_inactive_status, normalize_identifier
from ..common.validators import optional_date, optional_str, require_date_order, require_email, require_non_empty
from ..core.constants import EMPLOYEE_ID_RETRIES, STATISTICS_WINDOW_DAYS
from ..core.enums import EmployeeStatus, EmploymentType, WriteEvent
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..cost_centers.repository import CostCenterRepository
from ..integrity.validator import IntegrityValidator
from ..locations.repository import LocationRepository
from ..notifications.service import EmployeeNotificationService
from ..users.model import UserContext
from ..users.service import ensure_user_authorized_for_company, require_write_access
from .identifiers import EmployeeIdentifierGenerator
from .model import EMPLOYEE_WRITABLE_FIELDS, Employee, EmployeeStatistics
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

_MANAGER_MISMATCH = "Employees assigned to a cost center must be managed by the responsible employee."


@dataclass(frozen=True)
class PreparedEmployeeWrite:
    changes: Dict[str, Any]
    client: Client
    existing: Optional[Employee] = None
    identifier_generated: bool = False


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
        return value.strip().lower() in {"true", "1"}
    raise ValidationError(f"{field_name} must be true or false.")


class EmployeeService:
    def __init__(
        self,
        employees: EmployeeRepository,
        clients: ClientRepository,
        cost_centers: CostCenterRepository,
        locations: LocationRepository,
        identifiers: EmployeeIdentifierGenerator,
        integrity_factory: Callable[[], IntegrityValidator],
        notifications: Optional[EmployeeNotificationService] = None,
    ):
        self._employees = employees
        self._clients = clients
        self._cost_centers = cost_centers
        self._locations = locations
        self._identifiers = identifiers
        self._integrity_factory = integrity_factory
        self._notifications = notifications

    # -------- Reads --------
    def _scope(self, user: UserContext, client_id: Optional[str]) -> Optional[List[str]]:
        scope = allowed_client_ids(user, self._clients)
        if client_id:
            return [client_id] if is_in_scope(client_id, scope) else []
        return scope

    def list_employees(
        self,
        user: UserContext,
        *,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Employee], int]:
        if status is not None and status not in (EmployeeStatus.ACTIVE.value, EmployeeStatus.INACTIVE.value):
            raise ValidationError('Status must be either "active" or "inactive".')
        scope = self._scope(user, client_id)
        items = self._employees.list(client_ids=scope, search=search, limit=limit, offset=offset, status=status)
        return items, self._employees.count(client_ids=scope, search=search, status=status)

    def get_employee(self, user: UserContext, employee_pk: str) -> Employee:
        employee = self._employees.get_by_id(employee_pk)
        if not employee or not is_in_scope(employee.client_id, allowed_client_ids(user, self._clients)):
            raise NotFoundError("Employee not found.")
        return employee

    def get_statistics(self, user: UserContext, *, client_id: Optional[str] = None) -> EmployeeStatistics:
        return self._employees.statistics(
            client_ids=self._scope(user, client_id),
            today=today(),
            since=days_ago(STATISTICS_WINDOW_DAYS),
            horizon=days_from_now(STATISTICS_WINDOW_DAYS),
        )

    # -------- Write preparation --------
    def _resolve_client(self, data: Mapping[str, Any], existing: Optional[Employee], user: UserContext) -> Client:
        client_id = normalize_identifier(data.get("client_id"))
        if not client_id and existing:
            client_id = existing.client_id
        if not client_id:
            raise ValidationError("Client is required.")
        client = self._clients.get_by_id(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found.")
        if existing and existing.client_id != client.id:
            previous = self._clients.get_by_id(existing.client_id)
            ensure_user_authorized_for_company(user, previous.company_id if previous else None)
        ensure_user_authorized_for_company(user, client.company_id)
        return client

    @staticmethod
    def _validate_timeline(data: Dict[str, Any], changes: Dict[str, Any], existing: Optional[Employee]) -> None:
        entry_date = (
            optional_date(data["entry_date"], "Entry date") if "entry_date" in data else (existing.entry_date if existing else None)
        )
        if not entry_date:
            raise ValidationError("Entry date is required.")
        if "entry_date" in data:
            changes["entry_date"] = entry_date

        exit_date = optional_date(data["exit_date"], "Exit date") if "exit_date" in data else (
            existing.exit_date if existing else None
        )
        if "exit_date" in data:
            changes["exit_date"] = exit_date

        if data.get("status") is not None:
            status = str(data["status"]).strip().lower()
            if status not in (EmployeeStatus.ACTIVE.value, EmployeeStatus.INACTIVE.value):
                raise ValidationError('Status must be either "active" or "inactive".')
            changes["status"] = status
        status = changes.get("status") or (existing.status.value if existing else EmployeeStatus.ACTIVE.value)
        inactive = is_inactive_status(status)

        require_date_order(entry_date, exit_date, "Exit date must be on or after entry date.")
        if inactive and not exit_date:
            raise ValidationError("Inactive employees must have an exit date.")
        if exit_date and not inactive:
            raise ValidationError("Employees with an exit date must have status set to inactive.")

    def _inherit_cost_center(self, data: Dict[str, Any]) -> None:
        if "cost_center_id" in data:
            return
        manager_pk = normalize_identifier(data.get("manager_id"))
        if not manager_pk:
            return
        manager = self._employees.get_by_id(manager_pk)
        if manager and manager.cost_center_id:
            data["cost_center_id"] = manager.cost_center_id

    def _resolve_manager_and_cost_center(
        self,
        event: WriteEvent,
        data: Dict[str, Any],
        changes: Dict[str, Any],
        client: Client,
        existing: Optional[Employee],
        target_id: Optional[str],
    ) -> None:
        cost_center_explicit = "cost_center_id" in data
        removing_cost_center = cost_center_explicit and data["cost_center_id"] is None
        requested_cost_center = normalize_identifier(data.get("cost_center_id")) if cost_center_explicit else None
        existing_cost_center = normalize_identifier(existing.cost_center_id) if existing else None
        final_cost_center = None if removing_cost_center else (requested_cost_center or existing_cost_center)

        manager_explicit = "manager_id" in data
        requested_manager = normalize_identifier(data.get("manager_id")) if manager_explicit else None
        existing_manager = normalize_identifier(existing.manager_id) if existing else None
        final_manager = requested_manager if manager_explicit else existing_manager
        defaulted = False

        if requested_manager and self._employees.get_by_id(requested_manager) is None:
            raise NotFoundError(f"Manager {requested_manager} not found.")

        if final_cost_center:
            cost_center = self._cost_centers.get_by_id(final_cost_center)
            if not cost_center:
                raise NotFoundError(f"Cost center {final_cost_center} not found.")
            if cost_center.client_id and cost_center.client_id != client.id:
                raise ValidationError("Cost center must belong to the same client.")

            responsible = normalize_identifier(cost_center.responsible_id)
            cost_center_changed = cost_center_explicit and not identifiers_match(existing_cost_center, final_cost_center)

            if (event == WriteEvent.CREATE or cost_center_changed) and not manager_explicit:
                final_manager = responsible
                defaulted = True

            if event == WriteEvent.CREATE or manager_explicit or cost_center_changed:
                if not final_manager or not identifiers_match(final_manager, responsible):
                    raise ValidationError(_MANAGER_MISMATCH)

        if target_id and final_manager and identifiers_match(final_manager, target_id):
            raise ValidationError("An employee cannot be their own manager.")

        if manager_explicit:
            changes["manager_id"] = requested_manager
        elif defaulted or final_manager != existing_manager:
            changes["manager_id"] = final_manager
        if cost_center_explicit:
            changes["cost_center_id"] = requested_cost_center

    def prepare_employee_write(
        self,
        event: WriteEvent,
        payload: Mapping[str, Any],
        *,
        user: UserContext,
        target_id: Optional[str] = None,
        token: Optional[ConcurrencyToken] = None,
    ) -> PreparedEmployeeWrite:
        """Validate an employee payload; returns the column changes to persist."""
        data: Dict[str, Any] = {k: payload[k] for k in EMPLOYEE_WRITABLE_FIELDS if k in payload}
        existing: Optional[Employee] = None

        if event == WriteEvent.UPDATE:
            if not target_id:
                raise ValidationError("Employee identifier is required.")
            existing = self._employees.get_by_id(target_id)
            ensure_optimistic_concurrency(existing.modified_at if existing else None, token, entity="Employee")
            if "employee_id" in data:
                new_value = normalize_identifier(data["employee_id"])
                if not new_value or new_value != normalize_identifier(existing.employee_id):
                    raise ValidationError("Employee ID cannot be modified.")
                data.pop("employee_id")

        changes: Dict[str, Any] = {}
        for key, label in (("first_name", "First name"), ("last_name", "Last name")):
            if event == WriteEvent.CREATE or key in data:
                changes[key] = require_non_empty(data.get(key), label)
        if event == WriteEvent.CREATE or "email" in data:
            changes["email"] = require_email(data.get("email"))
        if "position_level" in data:
            changes["position_level"] = optional_str(data["position_level"])
        if "employment_type" in data:
            kind = str(data["employment_type"] or "").strip().lower()
            if kind not in (EmploymentType.INTERNAL.value, EmploymentType.EXTERNAL.value):
                raise ValidationError('Employment type must be either "internal" or "external".')
            changes["employment_type"] = kind
        if "is_manager" in data:
            changes["is_manager"] = _parse_bool(data["is_manager"], "is_manager")
        if "location_id" in data:
            location_id = normalize_identifier(data["location_id"])
            if location_id and self._locations.get_by_id(location_id) is None:
                raise NotFoundError(f"Location {location_id} not found.")
            changes["location_id"] = location_id

        client = self._resolve_client(data, existing, user)
        changes["client_id"] = client.id

        self._validate_timeline(data, changes, existing)

        if event == WriteEvent.CREATE:
            self._inherit_cost_center(data)
        self._resolve_manager_and_cost_center(event, data, changes, client, existing, target_id)

        self._integrity_factory().validate_employee_relations([{**changes, "id": target_id} if target_id else changes])

        generated = False
        if event == WriteEvent.CREATE:
            resolved = self._identifiers.ensure_employee_identifier(client, data.get("employee_id"))
            changes["employee_id"] = resolved.value
            generated = resolved.generated

        return PreparedEmployeeWrite(changes=changes, client=client, existing=existing, identifier_generated=generated)

    # -------- Writes --------
    def create_employee(self, payload: Mapping[str, Any], *, user: UserContext) -> Employee:
        require_write_access(user)
        for attempt in range(1, EMPLOYEE_ID_RETRIES + 1):
            prepared = self.prepare_employee_write(WriteEvent.CREATE, payload, user=user)
            changes = prepared.changes
            try:
                employee = self._employees.insert(
                    Employee(
                        id=str(uuid.uuid4()),
                        employee_id=changes["employee_id"],
                        first_name=changes["first_name"],
                        last_name=changes["last_name"],
                        email=changes["email"],
                        entry_date=changes["entry_date"],
                        client_id=changes["client_id"],
                        status=EmployeeStatus(changes.get("status", EmployeeStatus.ACTIVE.value)),
                        employment_type=EmploymentType(changes.get("employment_type", EmploymentType.INTERNAL.value)),
                        is_manager=bool(changes.get("is_manager", False)),
                        location_id=changes.get("location_id"),
                        position_level=changes.get("position_level"),
                        exit_date=changes.get("exit_date"),
                        manager_id=changes.get("manager_id"),
                        cost_center_id=changes.get("cost_center_id"),
                        created_by=user.username,
                    )
                )
            except ConflictError:
                if not prepared.identifier_generated:
                    raise
                logger.warning(
                    "Generated employee ID %s collided on insert (attempt %s of %s)",
                    changes["employee_id"],
                    attempt,
                    EMPLOYEE_ID_RETRIES,
                )
                continue

            logger.info("Employee %s created in client %s by %s", employee.employee_id, prepared.client.company_id, user.username)
            if self._notifications is not None:
                self._notifications.enqueue_notifications([employee])
            return employee

        raise DomainError("Failed to generate a unique employee identifier.", status_code=500)

    def update_employee(
        self,
        employee_pk: str,
        payload: Mapping[str, Any],
        *,
        user: UserContext,
        token: Optional[ConcurrencyToken] = None,
    ) -> Employee:
        require_write_access(user)
        prepared = self.prepare_employee_write(WriteEvent.UPDATE, payload, user=user, target_id=employee_pk, token=token)
        return self._employees.update(employee_pk, prepared.changes, modified_by=user.username)

    def validate_employee_deletion(
        self, employee_pk: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> Employee:
        employee = self._employees.get_by_id(employee_pk)
        ensure_optimistic_concurrency(employee.modified_at if employee else None, token, entity="Employee")
        client = self._clients.get_by_id(employee.client_id)
        if not client:
            raise NotFoundError(f"Client {employee.client_id} not found.")
        ensure_user_authorized_for_company(user, client.company_id)
        return employee

    def delete_employee(
        self, employee_pk: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> None:
        require_write_access(user)
        employee = self.validate_employee_deletion(employee_pk, user=user, token=token)
        responsible_for = self._cost_centers.count_responsible_for(employee.id)
        if responsible_for:
            raise ConflictError(
                f"Employee is responsible for {responsible_for} cost center(s); assign a new responsible first."
            )
        self._employees.delete(employee.id)
        logger.info("Employee %s deleted by %s", employee.employee_id, user.username)
