from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an HR user allowed to sign in to the API.

    Note: plain data object, no DB access here.
    """

    user_id: int
    username: str
    password_hash: str
    full_name: str
    roles: frozenset[Role] = field(default_factory=frozenset)
    company_codes: tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class UserContext:
    """The authenticated caller, as seen by the domain services."""

    username: str
    roles: frozenset[Role] = field(default_factory=frozenset)
    company_codes: tuple[str, ...] = ()
    user_id: Optional[int] = None

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def can_write(self) -> bool:
        return bool(self.roles & {Role.ADMIN, Role.EDITOR})
