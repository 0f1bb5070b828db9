from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..clients.repository import ClientRepository
from ..clients.scope import allowed_client_ids, is_in_scope
from ..common.concurrency import ConcurrencyToken, ensure_optimistic_concurrency
from ..common.datetime_utils import days_from_now, today
from ..common.normalization import normalize_cost_center_code, normalize_identifier
from ..common.validators import optional_date, optional_str, require_date_order, require_non_empty
from ..core.constants import STATISTICS_WINDOW_DAYS
from ..core.enums import WriteEvent
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..integrity.validator import IntegrityValidator
from ..users.model import UserContext
from ..users.service import ensure_user_authorized_for_company, require_write_access
from .model import COST_CENTER_WRITABLE_FIELDS, CostCenter, CostCenterStatistics
from .repository import CostCenterRepository

logger = logging.getLogger(__name__)


class CostCenterService:
    def __init__(
        self,
        cost_centers: CostCenterRepository,
        clients: ClientRepository,
        employees: EmployeeRepository,
        integrity_factory: Callable[[], IntegrityValidator],
    ):
        self._cost_centers = cost_centers
        self._clients = clients
        self._employees = employees
        self._integrity_factory = integrity_factory

    def _scope(self, user: UserContext, client_id: Optional[str]) -> Optional[List[str]]:
        scope = allowed_client_ids(user, self._clients)
        if client_id:
            return [client_id] if is_in_scope(client_id, scope) else []
        return scope

    def list_cost_centers(
        self,
        user: UserContext,
        *,
        client_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[CostCenter], int]:
        scope = self._scope(user, client_id)
        items = self._cost_centers.list(client_ids=scope, search=search, limit=limit, offset=offset)
        return items, self._cost_centers.count(client_ids=scope, search=search)

    def get_cost_center(self, user: UserContext, cost_center_id: str) -> CostCenter:
        cost_center = self._cost_centers.get_by_id(cost_center_id)
        if not cost_center or not is_in_scope(cost_center.client_id, allowed_client_ids(user, self._clients)):
            raise NotFoundError("Cost center not found.")
        return cost_center

    def get_delete_preview(self, user: UserContext, cost_center_id: str) -> Dict[str, Any]:
        cost_center = self.get_cost_center(user, cost_center_id)
        return {"code": cost_center.code, "name": cost_center.name, **self._cost_centers.count_related(cost_center.id)}

    def get_statistics(self, user: UserContext, *, client_id: Optional[str] = None) -> CostCenterStatistics:
        return self._cost_centers.statistics(
            client_ids=self._scope(user, client_id),
            today=today(),
            horizon=days_from_now(STATISTICS_WINDOW_DAYS),
        )

    def prepare_cost_center_upsert(
        self,
        event: WriteEvent,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        target_id: Optional[str] = None,
        token: Optional[ConcurrencyToken] = None,
    ) -> Dict[str, Any]:
        existing: Optional[CostCenter] = None
        if event == WriteEvent.UPDATE:
            existing = self._cost_centers.get_by_id(target_id) if target_id else None
            ensure_optimistic_concurrency(existing.modified_at if existing else None, token, entity="Cost center")

        changes: Dict[str, Any] = {k: data[k] for k in COST_CENTER_WRITABLE_FIELDS if k in data}

        if event == WriteEvent.CREATE or "code" in changes:
            code = normalize_cost_center_code(changes.get("code"))
            if not code:
                raise ValidationError("Cost center code is required.")
            changes["code"] = code
        if event == WriteEvent.CREATE or "name" in changes:
            changes["name"] = require_non_empty(changes.get("name"), "Cost center name")
        if "description" in changes:
            changes["description"] = optional_str(changes["description"])

        for key, label in (("valid_from", "Valid from"), ("valid_to", "Valid to")):
            if key in changes:
                changes[key] = optional_date(changes[key], label)
        require_date_order(
            changes["valid_from"] if "valid_from" in changes else (existing.valid_from if existing else None),
            changes["valid_to"] if "valid_to" in changes else (existing.valid_to if existing else None),
            "Valid from must be on or before valid to.",
        )

        client_id = changes.get("client_id") if "client_id" in changes else (existing.client_id if existing else None)
        client_id = normalize_identifier(client_id)
        if not client_id:
            raise ValidationError("Client is required.")
        client = self._clients.get_by_id(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found.")
        if existing and existing.client_id != client_id:
            previous = self._clients.get_by_id(existing.client_id)
            ensure_user_authorized_for_company(user, previous.company_id if previous else None)
        ensure_user_authorized_for_company(user, client.company_id)
        changes["client_id"] = client_id

        responsible_id = (
            changes.get("responsible_id") if "responsible_id" in changes else (existing.responsible_id if existing else None)
        )
        responsible_id = normalize_identifier(responsible_id)
        if not responsible_id:
            raise ValidationError("Responsible employee is required.")
        responsible = self._employees.get_by_id(responsible_id)
        if not responsible:
            raise NotFoundError(f"Employee {responsible_id} not found.")
        if responsible.client_id != client_id:
            raise ValidationError("Responsible employee must belong to the same client.")
        if event == WriteEvent.CREATE or "responsible_id" in changes:
            changes["responsible_id"] = responsible_id

        code = changes.get("code") or (existing.code if existing else None)
        code_or_client_changed = existing is None or code != existing.code or client_id != existing.client_id
        if code and code_or_client_changed:
            other = self._cost_centers.get_by_code(client_id, code)
            if other and (existing is None or other.id != existing.id):
                raise ConflictError(f"Cost center code {code} already exists for this client.")

        self._integrity_factory().validate_cost_center_relations(
            [{**changes, "id": target_id} if target_id else changes]
        )
        return changes

    def create_cost_center(self, data: Mapping[str, Any], *, user: UserContext) -> CostCenter:
        require_write_access(user)
        changes = self.prepare_cost_center_upsert(WriteEvent.CREATE, data, user=user)
        cost_center = self._cost_centers.insert(
            CostCenter(
                id=str(uuid.uuid4()),
                code=changes["code"],
                name=changes["name"],
                description=changes.get("description"),
                client_id=changes["client_id"],
                responsible_id=changes["responsible_id"],
                valid_from=changes.get("valid_from"),
                valid_to=changes.get("valid_to"),
                created_by=user.username,
            )
        )
        logger.info("Cost center %s created by %s", cost_center.code, user.username)
        return cost_center

    def update_cost_center(
        self,
        cost_center_id: str,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        token: Optional[ConcurrencyToken] = None,
    ) -> CostCenter:
        require_write_access(user)
        changes = self.prepare_cost_center_upsert(
            WriteEvent.UPDATE, data, user=user, target_id=cost_center_id, token=token
        )
        return self._cost_centers.update(cost_center_id, changes, modified_by=user.username)

    def validate_cost_center_deletion(
        self, cost_center_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> CostCenter:
        cost_center = self._cost_centers.get_by_id(cost_center_id)
        ensure_optimistic_concurrency(cost_center.modified_at if cost_center else None, token, entity="Cost center")
        client = self._clients.get_by_id(cost_center.client_id)
        if not client:
            raise NotFoundError(f"Client {cost_center.client_id} not found.")
        ensure_user_authorized_for_company(user, client.company_id)
        return cost_center

    def delete_cost_center(
        self, cost_center_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> None:
        require_write_access(user)
        cost_center = self.validate_cost_center_deletion(cost_center_id, user=user, token=token)
        self._cost_centers.delete(cost_center.id)
        logger.info("Cost center %s deleted by %s", cost_center.code, user.username)
