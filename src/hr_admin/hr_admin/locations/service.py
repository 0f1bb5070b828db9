from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..clients.repository import ClientRepository
from ..clients.scope import allowed_client_ids, is_in_scope
from ..common.concurrency import ConcurrencyToken, ensure_optimistic_concurrency
from ..common.normalization import is_valid_country_code
from ..common.validators import optional_date, optional_str, require_date_order, require_non_empty
from ..core.enums import WriteEvent
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..integrity.validator import IntegrityValidator
from ..users.model import UserContext
from ..users.service import ensure_user_authorized_for_company, require_write_access
from .model import LOCATION_WRITABLE_FIELDS, Location
from .repository import LocationRepository

logger = logging.getLogger(__name__)

_REQUIRED_ON_CREATE = (("city", "City"), ("zip_code", "ZIP code"), ("street", "Street"))


class LocationService:
    def __init__(
        self,
        locations: LocationRepository,
        clients: ClientRepository,
        integrity_factory: Callable[[], IntegrityValidator],
    ):
        self._locations = locations
        self._clients = clients
        self._integrity_factory = integrity_factory

    def list_locations(
        self,
        user: UserContext,
        *,
        client_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Location], int]:
        scope = allowed_client_ids(user, self._clients)
        if client_id:
            scope = [client_id] if is_in_scope(client_id, scope) else []
        items = self._locations.list(client_ids=scope, search=search, limit=limit, offset=offset)
        return items, self._locations.count(client_ids=scope, search=search)

    def get_location(self, user: UserContext, location_id: str) -> Location:
        location = self._locations.get_by_id(location_id)
        if not location or not is_in_scope(location.client_id, allowed_client_ids(user, self._clients)):
            raise NotFoundError("Location not found.")
        return location

    def get_delete_preview(self, user: UserContext, location_id: str) -> Dict[str, Any]:
        location = self.get_location(user, location_id)
        return {"city": location.city, "employee_count": self._locations.count_employees(location.id)}

    def prepare_location_upsert(
        self,
        event: WriteEvent,
        data: Mapping[str, Any],
        *,
        user: UserContext,
        target_id: Optional[str] = None,
        token: Optional[ConcurrencyToken] = None,
    ) -> Dict[str, Any]:
        existing: Optional[Location] = None
        if event == WriteEvent.UPDATE:
            existing = self._locations.get_by_id(target_id) if target_id else None
            ensure_optimistic_concurrency(existing.modified_at if existing else None, token, entity="Location")

        changes: Dict[str, Any] = {k: data[k] for k in LOCATION_WRITABLE_FIELDS if k in data}

        for key, label in _REQUIRED_ON_CREATE:
            if event == WriteEvent.CREATE or key in changes:
                changes[key] = require_non_empty(changes.get(key), label)

        if event == WriteEvent.CREATE or "country_code" in changes:
            country = require_non_empty(changes.get("country_code"), "Country code").upper()
            if not is_valid_country_code(country):
                raise ValidationError(f"Invalid country code: {country}")
            changes["country_code"] = country

        if "address_supplement" in changes:
            changes["address_supplement"] = optional_str(changes["address_supplement"])

        if event == WriteEvent.CREATE or "valid_from" in changes:
            valid_from = optional_date(changes.get("valid_from"), "Valid from")
            if valid_from is None:
                raise ValidationError("Valid from is required.")
            changes["valid_from"] = valid_from
        if "valid_to" in changes:
            changes["valid_to"] = optional_date(changes["valid_to"], "Valid to")

        require_date_order(
            changes.get("valid_from", existing.valid_from if existing else None),
            changes["valid_to"] if "valid_to" in changes else (existing.valid_to if existing else None),
            "Valid from must be on or before valid to.",
        )

        client_id = changes.get("client_id") if "client_id" in changes else (existing.client_id if existing else None)
        if not client_id:
            raise ValidationError("Client is required.")
        client = self._clients.get_by_id(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found.")
        if existing and existing.client_id != client_id:
            previous = self._clients.get_by_id(existing.client_id)
            ensure_user_authorized_for_company(user, previous.company_id if previous else None)
        ensure_user_authorized_for_company(user, client.company_id)

        self._integrity_factory().validate_location_relations([{**changes, "id": target_id} if target_id else changes])
        return changes

    def create_location(self, data: Mapping[str, Any], *, user: UserContext) -> Location:
        require_write_access(user)
        changes = self.prepare_location_upsert(WriteEvent.CREATE, data, user=user)
        location = self._locations.insert(
            Location(
                id=str(uuid.uuid4()),
                client_id=changes["client_id"],
                city=changes["city"],
                country_code=changes["country_code"],
                zip_code=changes["zip_code"],
                street=changes["street"],
                address_supplement=changes.get("address_supplement"),
                valid_from=changes["valid_from"],
                valid_to=changes.get("valid_to"),
                created_by=user.username,
            )
        )
        logger.info("Location %s (%s) created by %s", location.id, location.city, user.username)
        return location

    def update_location(
        self, location_id: str, data: Mapping[str, Any], *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> Location:
        require_write_access(user)
        changes = self.prepare_location_upsert(WriteEvent.UPDATE, data, user=user, target_id=location_id, token=token)
        return self._locations.update(location_id, changes, modified_by=user.username)

    def validate_location_deletion(
        self, location_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> Location:
        location = self._locations.get_by_id(location_id)
        ensure_optimistic_concurrency(location.modified_at if location else None, token, entity="Location")
        client = self._clients.get_by_id(location.client_id)
        if not client:
            raise NotFoundError(f"Client {location.client_id} not found.")
        ensure_user_authorized_for_company(user, client.company_id)

        in_use = self._locations.count_employees(location.id)
        if in_use:
            raise ConflictError(f"Location is still assigned to {in_use} employee(s).")
        return location

    def delete_location(
        self, location_id: str, *, user: UserContext, token: Optional[ConcurrencyToken] = None
    ) -> None:
        require_write_access(user)
        location = self.validate_location_deletion(location_id, user=user, token=token)
        self._locations.delete(location.id)
        logger.info("Location %s deleted by %s", location.id, user.username)
