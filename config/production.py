import os

from .config import EMPLOYEE_EXPORT_API_KEY, db_config, notification_config  # noqa: F401

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config()

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

OUTBOX_FROM_ENV = True

NOTIFICATION = notification_config()
