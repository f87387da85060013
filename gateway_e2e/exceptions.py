"""Exceptions raised by the gateway E2E fixtures and helpers."""
from __future__ import annotations

from typing import Iterable, Optional


class GatewayE2EError(Exception):
    """Base class for test-infrastructure failures."""
    pass


class ConfigurationError(GatewayE2EError):
    """Raised when the environment does not describe a gateway to test."""
    pass


class SeedLoadError(GatewayE2EError):
    """Raised when the seed data file is missing or malformed."""
    pass


class UnknownUserKeyError(GatewayE2EError, LookupError):
    """Raised for a named credential key that is not registered."""

    def __init__(self, key: str, valid_keys: Iterable[str]):
        self.key = key
        self.valid_keys = tuple(valid_keys)
        super().__init__(
            f"Unknown user key: {key}. Valid keys: {', '.join(self.valid_keys)}"
        )


class AuthenticationError(GatewayE2EError):
    """Login endpoint rejected the credentials or answered unexpectedly."""

    def __init__(self, email: str, status_code: int, body: str = "", message: Optional[str] = None):
        self.email = email
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Authentication failed for {email}: {status_code}")


class MissingTokenError(AuthenticationError):
    """Login succeeded but the response body carried no token."""

    def __init__(self, email: str, status_code: int, body: str = ""):
        super().__init__(email, status_code, body, message=f"No token returned for {email}")


class ProvisioningError(GatewayE2EError):
    """Directory-backed user create/delete call failed."""

    def __init__(self, operation: str, status_code: int, body: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to {operation}: {status_code} {body}".rstrip())


class RetryExhaustedError(GatewayE2EError):
    """Raised when a retried operation failed on every attempt."""

    def __init__(self, attempts: int, last_error: BaseException, operation: str = "operation"):
        self.attempts = attempts
        self.last_error = last_error
        self.operation = operation
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )
