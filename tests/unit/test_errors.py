"""Tests for the core error hierarchy."""

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


class TestHierarchy:
    """All errors inherit from KeygateError."""

    def test_auth_subclasses(self):
        for err in (MalformedCredentialsError("x"), InvalidCredentialsError("y")):
            assert isinstance(err, AuthError)
            assert isinstance(err, KeygateError)

    def test_transient_is_storage_error(self):
        err = TransientStorageError("database is locked")
        assert isinstance(err, StorageError)
        assert isinstance(err, KeygateError)

    def test_config_error_is_keygate_error(self):
        assert isinstance(ConfigError("bad config"), KeygateError)

    def test_lookup_errors_are_not_auth_errors(self):
        assert not isinstance(NotFoundError("API key", "k"), AuthError)
        assert not isinstance(ConflictError("API key", "k"), AuthError)


class TestLookupErrors:
    def test_not_found_message_and_attrs(self):
        err = NotFoundError("API key", "abc")
        assert err.kind == "API key"
        assert err.ident == "abc"
        assert str(err) == "API key not found: abc"

    def test_conflict_message_and_attrs(self):
        err = ConflictError("API key", "abc")
        assert err.kind == "API key"
        assert err.ident == "abc"
        assert str(err) == "API key already exists: abc"
