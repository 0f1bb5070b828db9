from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EmployeeStatus, EmploymentType


@dataclass(frozen=True)
class Employee:
    id: str
    employee_id: str
    first_name: str
    last_name: str
    email: str
    entry_date: date
    client_id: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    employment_type: EmploymentType = EmploymentType.INTERNAL
    is_manager: bool = False
    location_id: Optional[str] = None
    position_level: Optional[str] = None
    exit_date: Optional[date] = None
    anonymized_at: Optional[datetime] = None
    manager_id: Optional[str] = None
    cost_center_id: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


@dataclass(frozen=True)
class EmployeeStatistics:
    total: int = 0
    active: int = 0
    inactive: int = 0
    internal: int = 0
    external: int = 0
    managers: int = 0
    recent_hires: int = 0
    upcoming_exits: int = 0


EMPLOYEE_WRITABLE_FIELDS = (
    "employee_id",
    "first_name",
    "last_name",
    "email",
    "location_id",
    "position_level",
    "entry_date",
    "exit_date",
    "status",
    "employment_type",
    "is_manager",
    "client_id",
    "manager_id",
    "cost_center_id",
)
