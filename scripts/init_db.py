"""Create the HR administration schema.

Applies database/schema.sql (clients, locations, employees, cost centers,
cost-center assignments, the employee ID counters and the notification
outbox with its dead letter table) and checks that every table exists.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.hr_admin.hr_admin.database.bootstrap import HR_TABLES, apply_schema, list_tables, missing_hr_tables


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    missing = missing_hr_tables(list_tables(db_config))
    if missing:
        print(f"ERROR: HR admin schema incomplete on {target}; missing tables: {', '.join(missing)}", file=sys.stderr)
        return 1

    print(f"OK: HR admin schema ready on {target} ({len(HR_TABLES)} tables: {', '.join(HR_TABLES)})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
