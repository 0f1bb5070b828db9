from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from flask import jsonify, request

from ..common.concurrency import ConcurrencyToken, build_etag
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.exceptions import ValidationError


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        if request.content_length:
            raise ValidationError("Request body must be valid JSON.")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def concurrency_token(body: Optional[Dict[str, Any]] = None) -> ConcurrencyToken:
    return ConcurrencyToken(
        header_value=request.headers.get("If-Match"),
        has_http_headers=True,
        payload_value=(body or {}).get("modified_at"),
    )


def _int_arg(names: Sequence[str], default: Optional[int], maximum: Optional[int] = None) -> Optional[int]:
    for name in names:
        raw = request.args.get(name)
        if raw is None or raw == "":
            continue
        try:
            value = int(raw)
        except ValueError:
            raise ValidationError(f"Parameter {name} must be a non-negative integer.")
        if value < 0:
            raise ValidationError(f"Parameter {name} must be a non-negative integer.")
        if maximum is not None and value > maximum:
            raise ValidationError(f"Value exceeds maximum allowed limit of {maximum}")
        return value
    return default


def paging() -> Tuple[int, int]:
    limit = _int_arg(("$top", "top"), DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
    offset = _int_arg(("$skip", "skip"), 0)
    return int(limit), int(offset)


def optional_paging() -> Tuple[Optional[int], int]:
    return _int_arg(("$top", "top"), None, MAX_PAGE_SIZE), int(_int_arg(("$skip", "skip"), 0))


def arg(name: str) -> Optional[str]:
    value = request.args.get(name)
    return value.strip() if value and value.strip() else None


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def to_json(entity: Any) -> Dict[str, Any]:
    data = asdict(entity) if is_dataclass(entity) else dict(entity)
    return _json_value(data)


def collection_response(items: Sequence[Any], count: int):
    return jsonify({"value": [to_json(i) for i in items], "count": int(count)})


def entity_response(entity: Any, *, status: int = 200, location: Optional[str] = None):
    response = jsonify(to_json(entity))
    response.status_code = status
    etag = build_etag(getattr(entity, "modified_at", None))
    if etag:
        response.headers["ETag"] = etag
    if location:
        response.headers["Location"] = location
    return response


def no_content():
    return "", 204
