from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlparse

from ..core.exceptions import ValidationError


def validate_notification_endpoint(value: Any, *, allow_insecure: bool = False) -> Optional[str]:
    """Trimmed endpoint URL, or None when empty. Only https unless insecure endpoints are allowed."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Notification endpoint must be a URL.")
    url = value.strip()
    if not url:
        return None

    parsed = urlparse(url)
    allowed = {"https", "http"} if allow_insecure else {"https"}
    if parsed.scheme.lower() not in allowed:
        raise ValidationError("Notification endpoint must use https.")
    if not parsed.hostname:
        raise ValidationError("Notification endpoint must include a host.")
    return url
