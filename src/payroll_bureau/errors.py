"""Error taxonomy for the bureau back office.

Every error raised by a service derives from BureauError and carries the HTTP
status and machine-readable code the API layer uses to build its response.
"""

from __future__ import annotations

from typing import Any


class BureauError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(BureauError):
    """Malformed or disallowed input, with field-level detail."""

    status_code = 400
    code = "VALIDATION_ERROR"


class DuplicateAccountError(BureauError):
    """A user with the registration email already exists."""

    status_code = 400
    code = "DUPLICATE_ACCOUNT"

    def __init__(self, email: str):
        self.email = email
        super().__init__("An account with this email already exists")


class AuthProviderError(BureauError):
    """The identity provider refused to create the identity."""

    status_code = 400
    code = "AUTH_PROVIDER_ERROR"


class TenantSetupFailedError(BureauError):
    """Tenant row could not be created."""

    status_code = 500
    code = "TENANT_SETUP_FAILED"

    def __init__(self, message: str = "Failed to setup company account"):
        super().__init__(message)


class ProfileSetupFailedError(BureauError):
    """User profile row could not be created."""

    status_code = 500
    code = "PROFILE_SETUP_FAILED"

    def __init__(self, message: str = "Failed to setup user profile"):
        super().__init__(message)


class NotFoundError(BureauError):
    """Missing user, client or onboarding record."""

    status_code = 404
    code = "NOT_FOUND"


class UnauthorizedError(BureauError):
    """No verified session on the request."""

    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ConcurrentUpdateError(BureauError):
    """A conditional write lost a race against another writer."""

    status_code = 409
    code = "CONCURRENT_UPDATE"

    def __init__(self, entity: str, expected_version: int):
        self.entity = entity
        self.expected_version = expected_version
        super().__init__(
            f"{entity} was modified concurrently (expected version {expected_version})"
        )


class InvalidTransitionError(BureauError):
    """Raised when an invalid state transition is attempted."""

    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InternalError(BureauError):
    """Unexpected or store-level failure."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
