from __future__ import annotations

import os
from typing import Optional


def resolve_positive_int(name: str, fallback: int, minimum: int = 1) -> int:
    """Read a positive integer from the environment, falling back on bad input."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        value = int(float(raw))
    except ValueError:
        return fallback
    if value < minimum:
        return fallback
    return value


def resolve_non_negative_int(name: str, fallback: int) -> int:
    return resolve_positive_int(name, fallback, minimum=0)


def resolve_bool(name: str, fallback: bool) -> bool:
    raw: Optional[str] = os.getenv(name)
    if raw is None or not raw.strip():
        return fallback
    return raw.strip().lower() in {"1", "true", "yes", "on"}
