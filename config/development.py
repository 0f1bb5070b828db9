import os

from .config import EMPLOYEE_EXPORT_API_KEY, db_config, notification_config  # noqa: F401

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config(default_password="root")

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Outbox values come from OUTBOX_* environment variables (see OutboxConfig.from_env)
OUTBOX_FROM_ENV = True

NOTIFICATION = notification_config(allow_insecure_default=True)
