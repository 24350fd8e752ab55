"""Core errors, retry and logging utilities."""

from keygate.core.errors import (
    AuthError,
    ConfigError,
    ConflictError,
    InvalidCredentialsError,
    KeygateError,
    MalformedCredentialsError,
    NotFoundError,
    StorageError,
    TransientStorageError,
)
from keygate.core.retry import RetryConfig, retry_read

__all__ = [
    "AuthError",
    "ConfigError",
    "ConflictError",
    "InvalidCredentialsError",
    "KeygateError",
    "MalformedCredentialsError",
    "NotFoundError",
    "RetryConfig",
    "StorageError",
    "TransientStorageError",
    "retry_read",
]
