"""Per-request authentication: HTTP Basic credentials to an Identity.

Every request ends either in an ``Identity`` or in an ``AuthError``.
Unknown ids, revoked keys and wrong secrets raise the same
``InvalidCredentialsError`` after the same amount of hashing work: when
no record exists the secret is verified against a dummy hash, and the
``active`` flag is checked only after verification has run.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keygate.core.errors import InvalidCredentialsError, MalformedCredentialsError
from keygate.core.retry import RetryConfig, retry_read
from keygate.store.repository import CredentialStore

if TYPE_CHECKING:
    from concurrent.futures import Executor

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from keygate.auth.hasher import SecretHasher
    from keygate.store.models import ApiKey

logger = logging.getLogger(__name__)

_REJECTED = "Invalid credentials"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Key id and secret as presented by the client."""

    key_id: str
    secret: str

    def __repr__(self) -> str:
        return f"Credentials(key_id={self.key_id!r}, secret=<redacted>)"


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated caller, attached to the request for authorization."""

    key_id: str
    is_admin: bool
    label: str = ""
    owner: str = ""


@dataclass(frozen=True, slots=True)
class _Candidate:
    """Snapshot of a stored key, detached from any session."""

    key_id: str
    secret_hash: str
    active: bool
    is_admin: bool
    label: str
    owner: str


def parse_basic_auth(header: str | None) -> Credentials:
    """Parse an ``Authorization: Basic <base64(id:secret)>`` header.

    Raises:
        MalformedCredentialsError: Missing header, wrong scheme, bad
            base64 or UTF-8, missing ``:``, or an empty id or secret.
    """
    if not header:
        raise MalformedCredentialsError("Missing Authorization header")

    scheme, _, param = header.strip().partition(" ")
    if scheme.lower() != "basic" or not param.strip():
        raise MalformedCredentialsError("Authorization scheme is not Basic")

    try:
        decoded = base64.b64decode(param.strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        msg = "Basic credentials are not valid base64"
        raise MalformedCredentialsError(msg) from e

    key_id, sep, secret = decoded.partition(":")
    if not sep:
        raise MalformedCredentialsError("Basic credentials lack a ':' separator")
    if not key_id or not secret:
        raise MalformedCredentialsError("Basic credentials have an empty field")

    return Credentials(key_id=key_id, secret=secret)


class Authenticator:
    """Verify Basic credentials against the credential store.

    Hashing runs on *executor* (the event loop's default pool when None)
    with no database session open, so slow verification never holds a
    connection or a lock.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: SecretHasher,
        retry: RetryConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._factory = session_factory
        self._hasher = hasher
        self._retry = retry or RetryConfig()
        self._executor = executor
        # Computed up front so the first unknown-id request costs no extra hash.
        self._dummy_hash = hasher.dummy_hash

    async def authenticate(self, header: str | None) -> Identity:
        """Resolve an Authorization header to an Identity.

        Raises:
            MalformedCredentialsError: Header missing or unparseable.
            InvalidCredentialsError: Unknown id, revoked key, or wrong secret.
            StorageError: The lookup failed after bounded retries.
        """
        creds = parse_basic_auth(header)
        candidate = await self._lookup(creds.key_id)

        stored_hash = (
            candidate.secret_hash if candidate is not None else self._dummy_hash
        )
        verified = await self._verify(creds.secret, stored_hash)

        if candidate is None:
            reason = "unknown key"
        elif not verified:
            reason = "secret mismatch"
        elif not candidate.active:
            reason = "key revoked"
        else:
            return Identity(
                key_id=candidate.key_id,
                is_admin=candidate.is_admin,
                label=candidate.label,
                owner=candidate.owner,
            )

        logger.info(
            "Authentication rejected: %s",
            reason,
            extra={"key_id": creds.key_id},
        )
        raise InvalidCredentialsError(_REJECTED)

    async def _lookup(self, key_id: str) -> _Candidate | None:
        async def _read() -> _Candidate | None:
            async with self._factory() as session:
                api_key = await CredentialStore(session).get_or_none(key_id)
                return _snapshot(api_key) if api_key is not None else None

        return await retry_read(_read, self._retry)

    async def _verify(self, secret: str, stored_hash: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self._hasher.verify, secret, stored_hash
        )


def _snapshot(api_key: ApiKey) -> _Candidate:
    return _Candidate(
        key_id=api_key.id,
        secret_hash=api_key.secret_hash,
        active=bool(api_key.active),
        is_admin=bool(api_key.is_admin),
        label=api_key.label,
        owner=api_key.owner,
    )
