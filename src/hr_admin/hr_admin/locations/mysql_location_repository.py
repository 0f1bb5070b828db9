from __future__ import annotations

from typing import Any, Dict

from ..database.connection import DatabaseConnection
from ..database.mysql_base import count_value, db_cursor, fetchone
from ..database.mysql_entity_repository import MySQLEntityRepository
from .model import Location
from .repository import LocationRepository


def _to_location(row: Dict[str, Any]) -> Location:
    return Location(
        id=row["id"],
        client_id=row["client_id"],
        city=row["city"],
        country_code=row["country_code"],
        zip_code=row["zip_code"],
        street=row["street"],
        address_supplement=row.get("address_supplement"),
        valid_from=row["valid_from"],
        valid_to=row.get("valid_to"),
        created_at=row.get("created_at"),
        created_by=row.get("created_by"),
        modified_at=row.get("modified_at"),
        modified_by=row.get("modified_by"),
    )


class MySQLLocationRepository(MySQLEntityRepository[Location], LocationRepository):
    table = "locations"
    columns = (
        "id", "client_id", "city", "country_code", "zip_code", "street", "address_supplement",
        "valid_from", "valid_to", "created_at", "created_by", "modified_at", "modified_by",
    )
    search_columns = ("city", "street", "zip_code")
    order_by = "country_code, city, street"
    entity_label = "Location"

    def __init__(self, conn_factory: DatabaseConnection):
        super().__init__(conn_factory, _to_location)

    def insert(self, location: Location) -> Location:
        self._insert_values(
            {
                "id": location.id,
                "client_id": location.client_id,
                "city": location.city,
                "country_code": location.country_code,
                "zip_code": location.zip_code,
                "street": location.street,
                "address_supplement": location.address_supplement,
                "valid_from": location.valid_from,
                "valid_to": location.valid_to,
            },
            location.created_by,
        )
        return self.get_by_id(location.id)

    def delete(self, location_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM locations WHERE id=%s", (location_id,))

    def count_employees(self, location_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM employees WHERE location_id=%s", (location_id,))
            return count_value(fetchone(cur))
