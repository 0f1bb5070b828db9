"""HTTP delivery of outbox entries to client notification endpoints."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional

import requests

from ..common.datetime_utils import now_utc
from ..common.endpoints import validate_notification_endpoint
from ..core.constants import SIGNATURE_HEADER, SIGNATURE_TIMESTAMP_HEADER
from ..outbox.model import OutboxEntry

logger = logging.getLogger(__name__)

_MAX_BODY_IN_ERROR = 500


class NotificationDeliveryError(Exception):
    """Raised when the receiving endpoint rejects or cannot take the notification."""


def canonical_json(body: Any) -> str:
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)


def sign(body: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


class EmployeeNotifier:
    def __init__(
        self,
        *,
        secret: Optional[str] = None,
        timeout_ms: int = 15_000,
        allow_insecure_endpoints: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self._secret = secret or None
        self._timeout = timeout_ms / 1000.0
        self._allow_insecure = allow_insecure_endpoints
        self._session = session or requests.Session()
        if not self._secret:
            logger.warning("THIRD_PARTY_EMPLOYEE_SECRET not set; notifications will be sent unsigned.")

    def build_request(self, entry: OutboxEntry) -> tuple[str, str, Dict[str, str]]:
        try:
            body = json.loads(entry.payload)
        except (TypeError, ValueError) as e:
            raise NotificationDeliveryError(f"Invalid outbox payload: {e}") from e

        endpoint = validate_notification_endpoint(entry.destination, allow_insecure=self._allow_insecure)
        if not endpoint:
            raise NotificationDeliveryError("Outbox entry has no destination.")

        data = canonical_json(body)
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_TIMESTAMP_HEADER: now_utc().isoformat(timespec="milliseconds") + "Z",
        }
        if self._secret:
            headers[SIGNATURE_HEADER] = sign(data, self._secret)
        return endpoint, data, headers

    def deliver(self, entry: OutboxEntry) -> None:
        endpoint, data, headers = self.build_request(entry)
        try:
            response = self._session.post(endpoint, data=data.encode("utf-8"), headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise NotificationDeliveryError(f"Request to {endpoint} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            text = (response.text or "")[:_MAX_BODY_IN_ERROR]
            raise NotificationDeliveryError(f"HTTP {response.status_code} {text}".strip())
