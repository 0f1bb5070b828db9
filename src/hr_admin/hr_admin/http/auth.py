from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from flask import g, request

from ..core.exceptions import AuthenticationError
from ..users.model import UserContext
from ..users.service import ApiKeyVerifier, AuthService


def basic_auth_required(auth_service: AuthService) -> Callable:
    """Decorator factory: authenticates the request with HTTP Basic and stores the user on ``g``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            auth = request.authorization
            if auth is None or (auth.type or "").lower() != "basic" or not auth.username:
                raise AuthenticationError("Authentication required.")
            g.user = auth_service.authenticate(auth.username, auth.password or "")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def _api_key_from_request() -> Optional[str]:
    key = request.headers.get("X-API-Key")
    if key:
        return key
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "apikey":
        return value.strip()
    return None


def api_key_required(verifier: ApiKeyVerifier) -> Callable:
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            verifier.verify(_api_key_from_request())
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user() -> UserContext:
    return g.user
