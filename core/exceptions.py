"""Application-wide exception classes."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class ValidationError(ApplicationError):
    """Raised when roster data validation fails."""
    pass


class DrawError(ApplicationError):
    """Base exception for draw engine guard violations."""
    pass


class EmptyPoolError(DrawError):
    """Raised when a random pick is requested from an empty candidate list."""
    pass


class InvalidMatchError(DrawError):
    """Raised when a match references an unknown or already matched entity."""
    pass


class StorageError(ApplicationError):
    """Base exception for persistence errors."""
    pass


class StorageUnavailableError(StorageError):
    """Raised by a single storage tier when it cannot read or write."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(f"{backend}: {reason}")
        self.backend = backend
        self.reason = reason


class StorageExhaustedError(StorageError):
    """Raised when every storage tier failed to write the session."""

    def __init__(self, failures: list[StorageUnavailableError]) -> None:
        details = "; ".join(str(failure) for failure in failures) or "no storage configured"
        super().__init__(f"All storage tiers failed: {details}")
        self.failures = failures


class ServiceError(ApplicationError):
    """Base exception for service-level errors."""
    pass


class ProviderFailureError(ServiceError):
    """Raised when the congratulation message provider fails."""
    pass
