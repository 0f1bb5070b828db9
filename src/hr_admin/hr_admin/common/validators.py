from __future__ import annotations

import re
from datetime import date
from typing import Any, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import to_date

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required.")
    return value.strip()


def require_email(value: Any, field_name: str = "Email") -> str:
    email = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"{field_name} is not a valid email address.")
    return email


def optional_str(value: Any) -> str | None:
    """Trimmed string or None for empty input."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Expected a text value.")
    stripped = value.strip()
    return stripped or None


def optional_date(value: Any, field_name: str) -> Optional[date]:
    """Date from a date or ISO string; None for empty input."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = to_date(value)
    if parsed is None:
        raise ValidationError(f"{field_name} must be a valid date (YYYY-MM-DD).")
    return parsed


def require_date_order(start: Optional[date], end: Optional[date], message: str) -> None:
    if start and end and start > end:
        raise ValidationError(message)
