from __future__ import annotations

from typing import List, Optional

from ..users.model import UserContext
from ..users.service import allowed_company_codes
from .repository import ClientRepository


def allowed_client_ids(user: UserContext, clients: ClientRepository) -> Optional[List[str]]:
    """Client ids the user may read. None means unrestricted (admin)."""
    codes = allowed_company_codes(user)
    if codes is None:
        return None
    codes = list(codes)
    if not codes:
        return []
    return clients.ids_for_company_codes(codes)


def is_in_scope(client_id: Optional[str], scope: Optional[List[str]]) -> bool:
    return scope is None or (client_id is not None and client_id in scope)
