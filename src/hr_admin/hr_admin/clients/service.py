from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..common.concurrency import ConcurrencyToken, ensure_optimistic_concurrency
from ..common.endpoints import validate_notification_endpoint
from ..common.normalization import (
    derive_country_code_from_company_id,
    is_valid_country_code,
    normalize_company_id,
)
from ..common.validators import require_non_empty
from ..core.enums import WriteEvent
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..users.model import UserContext
from ..users.service import ensure_user_authorized_for_company, require_write_access
from .model import CLIENT_WRITABLE_FIELDS, Client
from .repository import ClientRepository
from .scope import allowed_client_ids, is_in_scope

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, clients: ClientRepository, *, allow_insecure_endpoints: bool = False):
        self._clients = clients
        self._allow_insecure_endpoints = allow_insecure_endpoints

    # -------- Reads --------
    def list_clients(
        self, user: UserContext, *, search: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> Tuple[List[Client], int]:
        scope = allowed_client_ids(user, self._clients)
        items = self._clients.list(client_ids=scope, search=search, limit=limit, offset=offset)
        return items, self._clients.count(client_ids=scope, search=search)

    def get_client(self, user: UserContext, client_id: str) -> Client:
        client = self._clients.get_by_id(client_id)
        if not client or not is_in_scope(client.id, allowed_client_ids(user, self._clients)):
            raise NotFoundError("Client not found.")
        return client

    def get_delete_preview(self, user: UserContext, client_id: str) -> Dict[str, Any]:
        client = self.get_client(user, client_id)
        counts = self._clients.count_related(client.id)
        return {"client_name": client.name, **counts}

    # -------- Writes --------
    def prepare_client_upsert(
        self,
        event: WriteEvent,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        target_id: Optional[str] = None,
        token: Optional[ConcurrencyToken] = None,
    ) -> Dict[str, Any]:
        """Validate a client payload and return the normalized column changes."""
        existing: Optional[Client] = None
        if event == WriteEvent.UPDATE:
            existing = self._clients.get_by_id(target_id) if target_id else None
            ensure_optimistic_concurrency(existing.modified_at if existing else None, token, entity="Client")

        changes: Dict[str, Any] = {k: data[k] for k in CLIENT_WRITABLE_FIELDS if k in data}

        if event == WriteEvent.CREATE or "company_id" in changes:
            company_id = normalize_company_id(changes.get("company_id"))
            if not company_id:
                raise ValidationError("Company ID is required.")
            changes["company_id"] = company_id

        if event == WriteEvent.CREATE or "name" in changes:
            changes["name"] = require_non_empty(changes.get("name"), "Client name")

        if changes.get("country_code") is not None:
            country = str(changes["country_code"]).strip().upper()
            if not is_valid_country_code(country):
                raise ValidationError(f"Invalid country code: {changes['country_code']}")
            changes["country_code"] = country

        if existing:
            ensure_user_authorized_for_company(user, existing.company_id)
        target_company = changes.get("company_id") or (existing.company_id if existing else None)
        ensure_user_authorized_for_company(user, target_company)

        company_changed = existing is None or changes.get("company_id", existing.company_id) != existing.company_id
        if not changes.get("country_code") and company_changed:
            derived = derive_country_code_from_company_id(target_company)
            if derived:
                changes["country_code"] = derived

        if company_changed:
            other = self._clients.get_by_company_id(target_company)
            if other and (existing is None or other.id != existing.id):
                raise ConflictError(f"Company ID {target_company} already exists.")

        if "notification_endpoint" in changes:
            changes["notification_endpoint"] = validate_notification_endpoint(
                changes["notification_endpoint"], allow_insecure=self._allow_insecure_endpoints
            )

        return changes

    def create_client(self, data: Mapping[str, Any], *, user: UserContext) -> Client:
        require_write_access(user)
        changes = self.prepare_client_upsert(WriteEvent.CREATE, data, user=user)
        client = self._clients.insert(
            Client(
                id=str(uuid.uuid4()),
                company_id=changes["company_id"],
                name=changes["name"],
                country_code=changes.get("country_code"),
                notification_endpoint=changes.get("notification_endpoint"),
                created_by=user.username,
            )
        )
        logger.info("Client %s created by %s", client.company_id, user.username)
        return client

    def update_client(
        self, client_id: str, data: Mapping[str, Any], *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> Client:
        require_write_access(user)
        changes = self.prepare_client_upsert(WriteEvent.UPDATE, data, user=user, target_id=client_id, token=token)
        return self._clients.update(client_id, changes, modified_by=user.username)

    def validate_client_deletion(
        self, client_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> Client:
        client = self._clients.get_by_id(client_id)
        ensure_optimistic_concurrency(client.modified_at if client else None, token, entity="Client")
        ensure_user_authorized_for_company(user, client.company_id)
        return client

    def delete_client(self, client_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None) -> None:
        require_write_access(user)
        client = self.validate_client_deletion(client_id, user=user, token=token)
        self._clients.delete(client.id)
        logger.info("Client %s deleted by %s", client.company_id, user.username)
