from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.hr_admin.hr_admin.container import build_container
from src.hr_admin.hr_admin.outbox.config import OutboxConfig


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    settings = importlib.import_module(get_settings_module())
    if getattr(settings, "OUTBOX_FROM_ENV", False):
        outbox_config = OutboxConfig.from_env()
    else:
        outbox_config = OutboxConfig.from_dict(getattr(settings, "OUTBOX", None))

    container = build_container(
        db_config=settings.DB_CONFIG,
        outbox_config=outbox_config,
        notification_config=getattr(settings, "NOTIFICATION", None),
        export_api_key=getattr(settings, "EMPLOYEE_EXPORT_API_KEY", None),
    )
    result = container.outbox_dispatcher.dispatch_pending()
    removed = container.outbox_cleanup.run()
    print(
        f"OK: claimed={result.claimed} delivered={result.delivered} "
        f"retried={result.retried} dead_lettered={result.dead_lettered} errored={result.errored} cleaned={removed}"
    )


if __name__ == "__main__":
    main()
