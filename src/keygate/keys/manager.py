"""API key lifecycle: create, list, revoke, delete.

Each operation opens its own session and commits before returning, so a
reported success is already durable. On error the session closes
without commit and nothing is left half-written.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keygate.core.retry import RetryConfig, retry_read
from keygate.store.models import ApiKey
from keygate.store.repository import CredentialStore

if TYPE_CHECKING:
    from concurrent.futures import Executor
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from keygate.auth.hasher import SecretHasher

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeyInfo:
    """Key metadata safe to show an administrator. No hash, no secret."""

    id: str
    label: str
    owner: str
    is_admin: bool
    active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, api_key: ApiKey) -> KeyInfo:
        return cls(
            id=api_key.id,
            label=api_key.label,
            owner=api_key.owner,
            is_admin=bool(api_key.is_admin),
            active=bool(api_key.active),
            created_at=api_key.created_at,
            updated_at=api_key.updated_at,
        )


@dataclass(frozen=True, slots=True)
class IssuedKey:
    """Result of ``KeyManager.create``: the only place the secret ever appears."""

    id: str
    secret: str
    label: str
    owner: str
    is_admin: bool
    created_at: datetime

    def __repr__(self) -> str:
        return f"IssuedKey(id={self.id!r}, label={self.label!r}, secret=<redacted>)"


class KeyManager:
    """Administrative operations over the credential store."""

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

    @property
    def hasher(self) -> SecretHasher:
        return self._hasher

    async def create(
        self, label: str, owner: str, is_admin: bool = False
    ) -> IssuedKey:
        """Mint a key. The returned secret cannot be recovered afterwards.

        Raises:
            ValueError: Empty label or owner.
            ConflictError: Generated id collided with an existing key.
        """
        if not label.strip():
            raise ValueError("label must not be empty")
        if not owner.strip():
            raise ValueError("owner must not be empty")

        generated = self._hasher.generate_secret()
        # Argon2 is CPU-bound; keep it off the event loop.
        secret_hash = await asyncio.get_running_loop().run_in_executor(
            self._executor, self._hasher.hash, generated.text
        )
        record = ApiKey(
            id=str(uuid.uuid4()),
            secret_hash=secret_hash,
            label=label,
            owner=owner,
            is_admin=is_admin,
            active=True,
        )

        async with self._factory() as session:
            stored = await CredentialStore(session).insert(record)
            await session.commit()

        logger.info(
            "API key created",
            extra={"key_id": stored.id, "is_admin": bool(stored.is_admin)},
        )
        return IssuedKey(
            id=stored.id,
            secret=generated.text,
            label=stored.label,
            owner=stored.owner,
            is_admin=bool(stored.is_admin),
            created_at=stored.created_at,
        )

    async def list(self) -> list[KeyInfo]:
        """All keys in creation order, without secret material."""

        async def _read() -> list[KeyInfo]:
            async with self._factory() as session:
                records = await CredentialStore(session).list_all()
                return [KeyInfo.from_record(r) for r in records]

        return await retry_read(_read, self._retry)

    async def get(self, key_id: str) -> KeyInfo:
        """Metadata for one key. Raises ``NotFoundError`` if absent."""

        async def _read() -> KeyInfo:
            async with self._factory() as session:
                record = await CredentialStore(session).find_by_id(key_id)
                return KeyInfo.from_record(record)

        return await retry_read(_read, self._retry)

    async def stale_hashes(self) -> set[str]:
        """Ids of keys whose stored hash predates the current Argon2 cost."""

        async def _read() -> set[str]:
            async with self._factory() as session:
                records = await CredentialStore(session).list_all()
                return {
                    r.id for r in records if self._hasher.needs_rehash(r.secret_hash)
                }

        return await retry_read(_read, self._retry)

    async def revoke(self, key_id: str) -> KeyInfo:
        """Deactivate a key. Revoking a revoked key is a no-op success.

        Raises:
            NotFoundError: No key with this id.
        """
        async with self._factory() as session:
            record = await CredentialStore(session).deactivate(key_id)
            await session.commit()
            info = KeyInfo.from_record(record)

        logger.info("API key revoked", extra={"key_id": key_id})
        return info

    async def delete(self, key_id: str) -> None:
        """Remove a key permanently.

        Raises:
            NotFoundError: No key with this id, including one already deleted.
        """
        async with self._factory() as session:
            await CredentialStore(session).delete(key_id)
            await session.commit()

        logger.info("API key deleted", extra={"key_id": key_id})
