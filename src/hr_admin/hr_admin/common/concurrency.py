"""Optimistic concurrency based on the entity's ``modified_at`` timestamp."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from werkzeug.http import parse_etags

from ..core.exceptions import NotFoundError, PreconditionFailedError, PreconditionRequiredError


@dataclass(frozen=True)
class ConcurrencyToken:
    """What the caller told us about the version it last saw.

    ``has_http_headers`` is False for internal calls (scripts, background jobs).
    """

    header_value: Optional[str] = None
    has_http_headers: bool = False
    payload_value: Any = None


INTERNAL = ConcurrencyToken()


def etag_value(modified_at: Optional[datetime]) -> Optional[str]:
    if modified_at is None:
        return None
    return modified_at.isoformat(timespec="microseconds")


def build_etag(modified_at: Optional[datetime]) -> Optional[str]:
    value = etag_value(modified_at)
    return f'W/"{value}"' if value else None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def ensure_optimistic_concurrency(
    current_modified_at: Optional[datetime],
    token: Optional[ConcurrencyToken],
    *,
    entity: str = "Entity",
) -> None:
    """Raise when the caller's version does not match the stored one.

    ``current_modified_at`` is None when the target row does not exist.
    """
    if current_modified_at is None:
        raise NotFoundError(f"{entity} not found.")

    token = token or INTERNAL
    current = etag_value(current_modified_at)

    header = (token.header_value or "").strip()
    if header == "*":
        return

    if header:
        etags = parse_etags(header)
        if etags.contains_weak(current):
            return
        raise PreconditionFailedError(f"{entity} was modified by another user. Reload and try again.")

    if token.payload_value is not None:
        supplied = _parse_timestamp(token.payload_value)
        if supplied is not None and supplied == current_modified_at:
            return
        raise PreconditionFailedError(f"{entity} was modified by another user. Reload and try again.")

    if token.has_http_headers:
        raise PreconditionRequiredError("If-Match header required.")
