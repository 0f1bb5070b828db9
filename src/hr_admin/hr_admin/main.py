from __future__ import annotations

import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .assignments.controller import register as register_assignments
from .clients.controller import register as register_clients
from .container import Container, build_container
from .cost_centers.controller import register as register_cost_centers
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .employees.controller import register as register_employees
from .http.errors import register_error_handlers
from .http.health import register as register_health
from .http.security import register_security_headers
from .locations.controller import register as register_locations
from .outbox.config import OutboxConfig
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _outbox_config(settings: ModuleType) -> OutboxConfig:
    if getattr(settings, "OUTBOX_FROM_ENV", False):
        return OutboxConfig.from_env()
    return OutboxConfig.from_dict(getattr(settings, "OUTBOX", None))


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    debug = bool(getattr(settings, "DEBUG", False))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = debug
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    outbox_config = _outbox_config(settings)

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(
            db_config=db_config,
            outbox_config=outbox_config,
            notification_config=getattr(settings, "NOTIFICATION", None),
            export_api_key=getattr(settings, "EMPLOYEE_EXPORT_API_KEY", None),
        )

    register_error_handlers(app)
    register_security_headers(app)

    register_health(app, container)
    register_users(app, container)
    register_clients(app, container)
    register_locations(app, container)
    register_cost_centers(app, container)
    register_employees(app, container)
    register_assignments(app, container)

    app.extensions["hr_admin.container"] = container

    if outbox_config.enabled and container.outbox_scheduler is not None:
        container.outbox_scheduler.start()

    return app
