from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Client:
    id: str
    company_id: str
    name: str
    country_code: Optional[str] = None
    notification_endpoint: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


CLIENT_WRITABLE_FIELDS = ("company_id", "name", "country_code", "notification_endpoint")
