"""Configuration loading and validation."""

from keygate.config.loader import load_config
from keygate.config.schema import (
    APIConfig,
    AuthConfig,
    DatabaseConfig,
    KeygateConfig,
    LoggingConfig,
    RetryConfigModel,
)

__all__ = [
    "APIConfig",
    "AuthConfig",
    "DatabaseConfig",
    "KeygateConfig",
    "LoggingConfig",
    "RetryConfigModel",
    "load_config",
]
