from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class CostCenter:
    id: str
    code: str
    name: str
    client_id: str
    responsible_id: str
    description: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None

    def is_valid_on(self, day: date) -> bool:
        if self.valid_from and day < self.valid_from:
            return False
        return not (self.valid_to and day > self.valid_to)


@dataclass(frozen=True)
class CostCenterStatistics:
    total: int = 0
    with_responsible: int = 0
    expiring_soon: int = 0


COST_CENTER_WRITABLE_FIELDS = ("code", "name", "description", "client_id", "responsible_id", "valid_from", "valid_to")
