from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..common.environment import resolve_bool, resolve_non_negative_int, resolve_positive_int


@dataclass(frozen=True)
class OutboxConfig:
    retry_delay_ms: int = 60_000
    max_attempts: int = 5
    batch_size: int = 20
    claim_ttl_ms: int = 120_000
    workers: int = 4
    enqueue_max_attempts: int = 3
    cleanup_retention_ms: int = 7 * 24 * 60 * 60 * 1000
    dispatch_interval_ms: int = 30_000
    cleanup_interval_ms: int = 60 * 60 * 1000
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "OutboxConfig":
        defaults = cls()
        return cls(
            retry_delay_ms=resolve_positive_int("OUTBOX_RETRY_DELAY_MS", defaults.retry_delay_ms, minimum=1000),
            max_attempts=resolve_positive_int("OUTBOX_MAX_ATTEMPTS", defaults.max_attempts),
            batch_size=resolve_positive_int("OUTBOX_BATCH_SIZE", defaults.batch_size),
            claim_ttl_ms=resolve_positive_int("OUTBOX_CLAIM_TTL_MS", defaults.claim_ttl_ms, minimum=1000),
            workers=resolve_positive_int("OUTBOX_DISPATCHER_WORKERS", defaults.workers),
            enqueue_max_attempts=resolve_positive_int("OUTBOX_ENQUEUE_MAX_ATTEMPTS", defaults.enqueue_max_attempts),
            cleanup_retention_ms=resolve_non_negative_int("OUTBOX_CLEANUP_RETENTION_MS", defaults.cleanup_retention_ms),
            dispatch_interval_ms=resolve_positive_int(
                "OUTBOX_DISPATCH_INTERVAL_MS", defaults.dispatch_interval_ms, minimum=1000
            ),
            cleanup_interval_ms=resolve_positive_int(
                "OUTBOX_CLEANUP_INTERVAL_MS", defaults.cleanup_interval_ms, minimum=1000
            ),
            enabled=resolve_bool("OUTBOX_ENABLED", defaults.enabled),
        )

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "OutboxConfig":
        if not values:
            return cls()
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__}
        return cls(**known)
