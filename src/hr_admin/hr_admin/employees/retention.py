from __future__ import annotations

import logging
from typing import Any, Optional

from ..clients.repository import ClientRepository
from ..common.datetime_utils import now_utc
from ..common.normalization import sanitize_identifier
from ..common.validators import optional_date
from ..core.constants import ANONYMIZED_EMAIL_DOMAIN, ANONYMIZED_PLACEHOLDER
from ..core.exceptions import ValidationError
from ..users.model import UserContext
from ..users.service import allowed_company_codes, require_write_access
from .model import Employee
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

_EMAIL_LOCAL_MAX = 64


def anonymized_email(employee: Employee) -> str:
    token = sanitize_identifier(employee.employee_id or employee.id).lower()[:_EMAIL_LOCAL_MAX]
    return f"anonymized-{token}@{ANONYMIZED_EMAIL_DOMAIN}"


class EmployeeRetentionService:
    """Anonymizes personal data of employees who left before a cut-off date."""

    def __init__(self, employees: EmployeeRepository, clients: ClientRepository):
        self._employees = employees
        self._clients = clients

    def anonymize_former_employees(self, user: UserContext, before: Any) -> int:
        require_write_access(user)
        try:
            cutoff = optional_date(before, "before")
        except ValidationError:
            raise ValidationError("Parameter 'before' must be a valid date (YYYY-MM-DD).")
        if cutoff is None:
            raise ValidationError("Parameter 'before' must be a valid date (YYYY-MM-DD).")

        client_ids: Optional[list[str]] = None
        codes = allowed_company_codes(user)
        if codes is not None:
            codes = list(codes)
            if not codes:
                return 0
            client_ids = self._clients.ids_for_company_codes(codes)
            if not client_ids:
                return 0

        candidates = self._employees.list_former_employees(before=cutoff, client_ids=client_ids)
        if not candidates:
            return 0

        count = self._employees.anonymize(
            [(e.id, anonymized_email(e)) for e in candidates],
            placeholder=ANONYMIZED_PLACEHOLDER,
            anonymized_at=now_utc(),
            modified_by=user.username,
        )
        logger.info("Anonymized %s former employee(s) with exit date before %s", count, cutoff.isoformat())
        return count
