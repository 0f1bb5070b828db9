import os

from .config import db_config

SECRET_KEY = "test-secret"

DB_CONFIG = db_config()

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# No background dispatcher during tests
OUTBOX = {"enabled": False}

NOTIFICATION = {
    "THIRD_PARTY_EMPLOYEE_SECRET": "test-secret",
    "THIRD_PARTY_EMPLOYEE_TIMEOUT_MS": 1000,
    "ALLOW_INSECURE_ENDPOINTS": True,
}
EMPLOYEE_EXPORT_API_KEY = "test-api-key"
