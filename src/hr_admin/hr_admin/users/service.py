from __future__ import annotations

import hmac
import logging
from typing import Iterable, Optional

from werkzeug.security import check_password_hash

from ..common.normalization import normalize_company_id
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from .model import UserContext
from .repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Use case: authenticate an HR user (HTTP Basic)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> UserContext:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password.")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password.")

        return UserContext(
            username=user.username,
            roles=user.roles,
            company_codes=user.company_codes,
            user_id=user.user_id,
        )


class ApiKeyVerifier:
    """Checks the machine-to-machine key used by the employee export."""

    def __init__(self, configured_key: Optional[str]):
        self._key = (configured_key or "").strip() or None
        if not self._key:
            logger.warning("Employee export API key not configured; export endpoint will reject all calls.")

    def verify(self, provided: Optional[str]) -> None:
        provided = (provided or "").strip()
        if not self._key or not provided:
            raise AuthenticationError("invalid_api_key")
        if not hmac.compare_digest(self._key.encode("utf-8"), provided.encode("utf-8")):
            raise AuthenticationError("invalid_api_key")


def require_write_access(user: UserContext) -> None:
    if not user.can_write:
        raise AuthorizationError("Forbidden: write access requires the HRAdmin or HREditor role.")


def ensure_user_authorized_for_company(user: UserContext, company_id: Optional[str]) -> None:
    """Company-code scoping for non-admin users."""
    if company_id is None:
        return

    normalized = normalize_company_id(company_id)
    if not normalized:
        raise ValidationError("Company identifier is required.")

    if user.is_admin:
        return

    if normalized not in user.company_codes:
        raise AuthorizationError("Forbidden: company code not assigned")


def allowed_company_codes(user: UserContext) -> Optional[Iterable[str]]:
    """None means unrestricted."""
    if user.is_admin:
        return None
    return user.company_codes
