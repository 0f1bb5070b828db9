from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles granted to HR users."""

    ADMIN = "HRAdmin"
    EDITOR = "HREditor"
    VIEWER = "HRViewer"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class EmploymentType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class OutboxStatus(str, Enum):
    """Delivery state of an outbox entry."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class WriteEvent(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
