"""Cross-entity client scoping.

Every employee, location and cost center belongs to exactly one client, and
whatever it points at (manager, cost center, location, responsible employee)
must belong to that same client.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.exceptions import ValidationError
from .lookup import IntegrityLookup

_EMPLOYEE_RELATIONS = (
    ("manager_id", "employees", "Manager"),
    ("cost_center_id", "cost_centers", "Cost center"),
    ("location_id", "locations", "Location"),
)


def _pick(row: Mapping[str, Any], current: Mapping[str, Any], key: str) -> Any:
    return row[key] if key in row else current.get(key)


class IntegrityValidator:
    """Validates relations for one request; lookups are cached for its lifetime."""

    def __init__(self, lookup: IntegrityLookup):
        self._lookup = lookup
        self._cache: Dict[str, Optional[str]] = {}

    def _remember(self, entity: str, rows: Mapping[str, Mapping[str, Any]]) -> None:
        for entity_id, row in rows.items():
            self._cache[f"{entity}:{entity_id}"] = row.get("client_id")

    def _existing(self, entity: str, rows: Sequence[Mapping[str, Any]]) -> Dict[str, Mapping[str, Any]]:
        ids = [r["id"] for r in rows if r.get("id")]
        if not ids:
            return {}
        loaded = self._lookup.load(entity, ids)
        self._remember(entity, loaded)
        return loaded

    def client_of(self, entity: str, entity_id: str) -> Optional[str]:
        """Owning client id, or None when the entity does not exist."""
        key = f"{entity}:{entity_id}"
        if key not in self._cache:
            loaded = self._lookup.load(entity, [entity_id])
            self._cache[key] = None
            self._remember(entity, loaded)
        return self._cache[key]

    def _ensure_same_client(self, client_id: str, entity: str, related_id: Any, label: str) -> None:
        if not related_id:
            return
        related_client = self.client_of(entity, related_id)
        # missing references are reported by the owning service as 404
        if related_client is not None and related_client != client_id:
            raise ValidationError(f"{label} {related_id} belongs to a different client.")

    def validate_employee_relations(self, rows: Sequence[Mapping[str, Any]]) -> None:
        existing = self._existing("employees", rows)
        for row in rows:
            current = existing.get(row.get("id"), {})
            client_id = _pick(row, current, "client_id")
            if not client_id:
                raise ValidationError("Employee must reference a client.")
            for field, entity, label in _EMPLOYEE_RELATIONS:
                self._ensure_same_client(client_id, entity, _pick(row, current, field), label)

    def validate_location_relations(self, rows: Sequence[Mapping[str, Any]]) -> None:
        existing = self._existing("locations", rows)
        for row in rows:
            current = existing.get(row.get("id"), {})
            if not _pick(row, current, "client_id"):
                raise ValidationError("Location must reference a client.")

    def validate_cost_center_relations(self, rows: Sequence[Mapping[str, Any]]) -> None:
        existing = self._existing("cost_centers", rows)
        for row in rows:
            current = existing.get(row.get("id"), {})
            client_id = _pick(row, current, "client_id")
            if not client_id:
                raise ValidationError("Cost center must reference a client.")
            self._ensure_same_client(
                client_id, "employees", _pick(row, current, "responsible_id"), "Responsible employee"
            )
