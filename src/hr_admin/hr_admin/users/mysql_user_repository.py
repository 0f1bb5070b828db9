from __future__ import annotations

from typing import Any, Dict, Optional

from ..common.normalization import normalize_company_id, split_csv
from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = "user_id, username, password_hash, full_name, roles, company_codes, is_active"


def _to_user(row: Dict[str, Any]) -> User:
    roles = frozenset(Role(r) for r in split_csv(row.get("roles")) if r in Role._value2member_map_)
    codes = tuple(c for c in (normalize_company_id(v) for v in split_csv(row.get("company_codes"))) if c)
    return User(
        user_id=int(row["user_id"]),
        username=row["username"],
        password_hash=row["password_hash"],
        full_name=row["full_name"],
        roles=roles,
        company_codes=codes,
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _to_user(row) if row else None
