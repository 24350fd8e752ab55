"""Exception hierarchy for keygate.

Every module imports from here. The hierarchy is:

    KeygateError
    ├── NotFoundError(kind, ident)
    ├── ConflictError(kind, ident)
    ├── AuthError
    │   ├── MalformedCredentialsError
    │   └── InvalidCredentialsError
    ├── ConfigError
    └── StorageError
        └── TransientStorageError

``AuthError`` messages are for logs only. HTTP callers always receive
the same generic 401 body regardless of which subclass was raised.
"""

from __future__ import annotations


class KeygateError(Exception):
    """Base exception for all keygate errors."""


# ─── Lookup Errors ────────────────────────────────────────────


class NotFoundError(KeygateError):
    """A record addressed by id or key does not exist."""

    def __init__(self, kind: str, ident: str) -> None:
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found: {ident}")


class ConflictError(KeygateError):
    """A record with the same identifier already exists."""

    def __init__(self, kind: str, ident: str) -> None:
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} already exists: {ident}")


# ─── Authentication Errors ────────────────────────────────────


class AuthError(KeygateError):
    """Base for request authentication failures."""


class MalformedCredentialsError(AuthError):
    """Authorization header missing or not parseable as Basic credentials."""


class InvalidCredentialsError(AuthError):
    """Unknown key id, revoked key, or wrong secret. All share one message."""


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(KeygateError):
    """Invalid configuration."""


# ─── Storage Errors ───────────────────────────────────────────


class StorageError(KeygateError):
    """Database I/O or durability failure."""


class TransientStorageError(StorageError):
    """Storage briefly unavailable (locked or busy). Safe to retry reads."""
