from __future__ import annotations

class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when credentials or API keys are missing or invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a uniqueness rule would be broken."""

    status_code = 409


class PreconditionFailedError(DomainError):
    """Raised when the caller's ETag no longer matches the stored version."""

    status_code = 412


class PreconditionRequiredError(DomainError):
    status_code = 428
