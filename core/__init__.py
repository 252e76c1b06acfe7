"""Core application components."""

# Import in correct order to avoid circular dependencies
from core.logger import setup_logger, get_logger
from core.constants import (
    DrawStage,
    MessagePolicy,
    DrawDefaults,
    StorageDefaults,
    MessageDefaults,
    RosterDefaults,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    ValidationError,
    DrawError,
    EmptyPoolError,
    InvalidMatchError,
    StorageError,
    StorageUnavailableError,
    StorageExhaustedError,
    ServiceError,
    ProviderFailureError,
)

__all__ = [
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'DrawStage',
    'MessagePolicy',
    'DrawDefaults',
    'StorageDefaults',
    'MessageDefaults',
    'RosterDefaults',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'ValidationError',
    'DrawError',
    'EmptyPoolError',
    'InvalidMatchError',
    'StorageError',
    'StorageUnavailableError',
    'StorageExhaustedError',
    'ServiceError',
    'ProviderFailureError',
]
