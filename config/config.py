"""Settings shared by every environment module."""

import os


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def db_config(default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": _int("DB_PORT", 3306),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "hr_admin"),
    }


def notification_config(*, allow_insecure_default: bool = False) -> dict:
    return {
        "THIRD_PARTY_EMPLOYEE_SECRET": os.getenv("THIRD_PARTY_EMPLOYEE_SECRET") or None,
        "THIRD_PARTY_EMPLOYEE_TIMEOUT_MS": _int("THIRD_PARTY_EMPLOYEE_TIMEOUT_MS", 15000),
        "ALLOW_INSECURE_ENDPOINTS": bool(
            int(os.getenv("ALLOW_INSECURE_ENDPOINTS", "1" if allow_insecure_default else "0"))
        ),
    }


EMPLOYEE_EXPORT_API_KEY = os.getenv("EMPLOYEE_EXPORT_API_KEY") or None
