"""Business identifiers for employees.

A generated identifier is an 8 character client prefix followed by a
6 digit counter, e.g. ``COMP001A000042``. The counter lives in
``employee_id_counters`` and only ever moves forward.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from ..clients.model import Client
from ..common.normalization import normalize_identifier, sanitize_identifier
from ..core.constants import (
    EMPLOYEE_ID_COUNTER_LENGTH,
    EMPLOYEE_ID_PREFIX_LENGTH,
    EMPLOYEE_ID_RETRIES,
)
from ..core.exceptions import ConflictError, DomainError
from .repository import EmployeeIdCounterRepository, EmployeeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedIdentifier:
    value: str
    generated: bool


def build_prefix(client: Client) -> str:
    sanitized_client = sanitize_identifier(client.id)
    digest = hashlib.sha256(sanitized_client.encode("utf-8")).hexdigest().upper()

    for candidate in (sanitize_identifier(client.company_id) + digest, sanitized_client, digest):
        if candidate:
            return candidate[:EMPLOYEE_ID_PREFIX_LENGTH]
    return digest[:EMPLOYEE_ID_PREFIX_LENGTH]


def format_identifier(prefix: str, counter: int) -> str:
    return f"{prefix}{counter:0{EMPLOYEE_ID_COUNTER_LENGTH}d}"


class EmployeeIdentifierGenerator:
    def __init__(
        self,
        employees: EmployeeRepository,
        counters: EmployeeIdCounterRepository,
        *,
        max_attempts: int = EMPLOYEE_ID_RETRIES,
    ):
        self._employees = employees
        self._counters = counters
        self._max_attempts = max_attempts

    def generate(self, client: Client) -> str:
        prefix = build_prefix(client)
        for attempt in range(1, self._max_attempts + 1):
            try:
                counter = self._counters.next_counter(client.id)
            except ConflictError:
                logger.info("Employee ID counter for client %s busy (attempt %s)", client.id, attempt)
                continue

            candidate = format_identifier(prefix, counter)
            if self._employees.find_by_employee_id(client.id, candidate) is None:
                return candidate
            # counter stays advanced past the taken value
            logger.info("Generated employee ID %s already taken (attempt %s)", candidate, attempt)

        raise DomainError("Failed to generate a unique employee identifier.", status_code=500)

    def ensure_employee_identifier(
        self,
        client: Client,
        provided: Optional[str],
        *,
        current: Optional[str] = None,
    ) -> ResolvedIdentifier:
        """Normalize a caller-supplied identifier or generate a new one."""
        value = normalize_identifier(provided)
        if value is None:
            return ResolvedIdentifier(self.generate(client), generated=True)

        value = value.upper()
        if current is not None and value == current.upper():
            return ResolvedIdentifier(value, generated=False)

        if self._employees.find_by_employee_id(client.id, value) is not None:
            raise ConflictError(f"Employee ID {value} already exists for this client.")
        return ResolvedIdentifier(value, generated=False)
