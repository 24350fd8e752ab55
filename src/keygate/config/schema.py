"""Pydantic models for keygate configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

from keygate.core.retry import RetryConfig


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///~/.local/share/keygate/keygate.db"
    busy_timeout_ms: int = Field(default=5000, ge=0)
    wal: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False


class APIConfig(BaseModel):
    """REST API server settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    rate_limit: int = Field(default=60, ge=1)
    rate_limit_per_ip: int = Field(default=120, ge=1)
    rate_limit_global: int = Field(default=1000, ge=1)
    rate_limit_window: int = Field(default=60, ge=1)
    health_path: str = "/health"


class AuthConfig(BaseModel):
    """Secret generation and Argon2id hashing parameters.

    Defaults follow the OWASP password storage recommendation for
    Argon2id (19 MiB, two iterations, one lane).
    """

    secret_bytes: int = Field(default=32, ge=16)
    time_cost: int = Field(default=2, ge=1)
    memory_cost: int = Field(default=19456, ge=8)
    parallelism: int = Field(default=1, ge=1)
    hash_len: int = Field(default=32, ge=16)
    salt_len: int = Field(default=16, ge=8)
    verify_workers: int = Field(default=4, ge=1)
    realm: str = "keygate"


class RetryConfigModel(BaseModel):
    """Bounded retry for storage reads."""

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=0.05, ge=0.0)
    max_delay: float = Field(default=1.0, ge=0.0)

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )


class KeygateConfig(BaseModel):
    """Top-level configuration for keygate."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    retry: RetryConfigModel = Field(default_factory=RetryConfigModel)
