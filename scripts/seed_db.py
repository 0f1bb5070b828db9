"""Load HR administration demo data.

Inserts the sample clients, locations, cost centers, employees and
assignments from database/seed.sql, then creates or resets the demo
accounts (admin, editor scoped to COMP-001, viewer scoped to DE-1000).
Run scripts/init_db.py first.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.hr_admin.hr_admin.database.bootstrap import DEMO_USERS, apply_seed_sql, count_seeded_rows, ensure_demo_users


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_users(db_config)

    counts = count_seeded_rows(db_config)
    summary = " ".join(f"{table}={count}" for table, count in counts.items())
    accounts = ", ".join(f"{username}/{password}" for username, password, *_ in DEMO_USERS)
    print(f"OK: Seeded HR admin demo data into {db_config.get('database')}: {summary}")
    print(f"Demo accounts: {accounts}")


if __name__ == "__main__":
    main()
