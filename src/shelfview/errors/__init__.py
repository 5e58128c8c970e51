"""Custom exception hierarchy for shelfview."""

from __future__ import annotations

from typing import Optional


class ShelfviewError(Exception):
    """Base class for all custom errors raised by shelfview."""


# --- 3-layer hierarchy ---

class DomainError(ShelfviewError):
    """Base class for domain-level errors."""


class InfrastructureError(ShelfviewError):
    """Base class for infrastructure-level errors."""


class ApplicationError(ShelfviewError):
    """Base class for application-level errors."""


# --- Gateway outcomes ---

class GatewayError(InfrastructureError):
    """Base class for outcomes reported by the API gateway."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(GatewayError):
    """Raised when the bearer credential is missing, expired or rejected."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class RequestCancelled(GatewayError):
    """Raised when a request was superseded and cancelled by its caller."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class RequestFailed(GatewayError):
    """Raised for transport failures, timeouts, bad statuses and malformed bodies."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status

    @classmethod
    def from_status(cls, operation: str, status: int) -> "RequestFailed":
        return cls(f"{operation} failed ({status})", status=status)


# --- Infrastructure errors ---

class CredentialStoreError(InfrastructureError):
    """Raised when the credential backing medium cannot be read or written."""


# --- DI-specific errors ---

class CircularDependencyError(ShelfviewError):
    """Raised when a circular dependency is detected during resolution."""


class ResolutionError(ShelfviewError):
    """Raised when a dependency cannot be resolved."""


# --- Settings ---

class SettingsError(ShelfviewError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
