from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Location:
    id: str
    client_id: str
    city: str
    country_code: str
    zip_code: str
    street: str
    valid_from: date
    address_supplement: Optional[str] = None
    valid_to: Optional[date] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


LOCATION_WRITABLE_FIELDS = (
    "client_id",
    "city",
    "country_code",
    "zip_code",
    "street",
    "address_supplement",
    "valid_from",
    "valid_to",
)
