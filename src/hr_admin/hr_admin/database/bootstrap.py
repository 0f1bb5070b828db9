from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)

DEMO_USERS = (
    # username, password, full name, roles, company codes
    ("admin", "admin123", "HR Admin", "HRAdmin", None),
    ("editor", "editor123", "HR Editor (Alpha)", "HREditor", "COMP-001"),
    ("viewer", "viewer123", "HR Viewer (Beta)", "HRViewer", "DE-1000"),
)

HR_TABLES = (
    "users",
    "clients",
    "locations",
    "employees",
    "cost_centers",
    "employee_id_counters",
    "employee_cost_center_assignments",
    "employee_notification_outbox",
    "employee_notification_dlq",
)

SEEDED_TABLES = ("clients", "locations", "cost_centers", "employees", "employee_cost_center_assignments", "users")


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in _strip_line_comments(sql):
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _run_script(db_config: dict, sql: str) -> None:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(_strip_create_db_and_use(sql)):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_script(db_config, Path(schema_path).read_text(encoding="utf-8"))
    logger.info("Applied schema %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_script(db_config, Path(seed_path).read_text(encoding="utf-8"))
    logger.info("Applied seed %s", seed_path)


def ensure_demo_users(db_config: dict) -> None:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        for username, password, full_name, roles, company_codes in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, password_hash=%s, roles=%s, company_codes=%s, is_active=1
                    WHERE username=%s
                    """,
                    (full_name, password_hash, roles, company_codes, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (username, password_hash, full_name, roles, company_codes, is_active)
                    VALUES (%s, %s, %s, %s, %s, 1)
                    """,
                    (username, password_hash, full_name, roles, company_codes),
                )
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def missing_hr_tables(tables: Iterable[str]) -> list[str]:
    present = {t.lower() for t in tables}
    return [t for t in HR_TABLES if t not in present]


def count_seeded_rows(db_config: dict) -> dict[str, int]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        counts = {}
        for table in SEEDED_TABLES:
            cur.execute(f"SELECT COUNT(*) FROM `{table}`")
            counts[table] = int(cur.fetchone()[0])
        return counts
    finally:
        conn.close()
