from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Assignment:
    """An employee's membership of a cost center over a date range."""

    id: str
    employee_id: str
    cost_center_id: str
    client_id: str
    valid_from: date
    valid_to: Optional[date] = None
    is_responsible: bool = False
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None

    def describe_range(self) -> str:
        if self.valid_to:
            return f"{self.valid_from.isoformat()} to {self.valid_to.isoformat()}"
        return f"{self.valid_from.isoformat()} onwards"


ASSIGNMENT_WRITABLE_FIELDS = ("employee_id", "cost_center_id", "client_id", "valid_from", "valid_to", "is_responsible")
