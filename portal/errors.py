"""Service-layer error taxonomy mapped onto HTTP status codes."""

from __future__ import annotations


class ServiceError(Exception):
    """Raised when a portal operation fails with a client-visible outcome."""

    status_code = 400
    code = "bad_request"

    def __init__(self, detail: str, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class AuthenticationMissingError(ServiceError):
    """No valid session accompanies the request."""

    status_code = 401
    code = "authentication_required"

    def __init__(self, detail: str = "Authentication required.") -> None:
        super().__init__(detail)


class InvalidCredentialsError(ServiceError):
    """Login failed; the cause is deliberately not disclosed."""

    status_code = 401
    code = "invalid_credentials"

    def __init__(self, detail: str = "Invalid credentials.") -> None:
        super().__init__(detail)


class AuthorizationDeniedError(ServiceError):
    """Identity is known but its role is outside the allow-list."""

    status_code = 403
    code = "insufficient_role"

    def __init__(self, detail: str = "Insufficient permissions.") -> None:
        super().__init__(detail)


class ValidationFailedError(ServiceError):
    """Request is well-formed but violates a business rule."""

    status_code = 400
    code = "validation_failed"


class NotFoundError(ServiceError):
    """Referenced record does not exist."""

    status_code = 404
    code = "not_found"


class ReferentialConflictError(ServiceError):
    """Parent record still has dependents and cannot be removed."""

    status_code = 400
    code = "has_dependents"


class StoreFailureError(ServiceError):
    """Relational store failed; details stay in the logs."""

    status_code = 500
    code = "store_failure"

    def __init__(self, detail: str = "Internal server error.") -> None:
        super().__init__(detail)
