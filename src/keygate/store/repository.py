"""Credential store: persistence for API keys and settings.

All mutating methods flush but do NOT commit. The caller controls
transaction boundaries via ``session.commit()``; an exception leaves
nothing behind once the session is rolled back or closed.

Uniqueness of ``api_keys.id`` is enforced by the primary key, not by a
read-then-write check, so two concurrent inserts of the same id cannot
both succeed.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, literal_column, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from keygate.core.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    TransientStorageError,
)
from keygate.store.models import ApiKey, Setting, _utcnow

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

_TRANSIENT_MARKERS = (
    "database is locked",
    "database is busy",
    "database table is locked",
)


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Translate driver errors into the keygate storage taxonomy."""
    try:
        yield
    except IntegrityError:
        raise
    except OperationalError as e:
        detail = str(e.orig).lower() if e.orig is not None else str(e).lower()
        if any(marker in detail for marker in _TRANSIENT_MARKERS):
            raise TransientStorageError(str(e.orig or e)) from e
        raise StorageError(str(e.orig or e)) from e
    except DBAPIError as e:
        raise StorageError(str(e.orig or e)) from e


class CredentialStore:
    """Async repository over ``api_keys`` and ``settings``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── API Key ──────────────────────────────────────────────────

    async def insert(self, record: ApiKey) -> ApiKey:
        """Persist *record*; ``ConflictError`` if its id is already taken.

        Uses a Core INSERT so the database constraint, not the session
        identity map, decides whether the id is free.
        """
        now = _utcnow()
        values = {
            "id": record.id,
            "secret_hash": record.secret_hash,
            "label": record.label,
            "owner": record.owner,
            "is_admin": bool(record.is_admin),
            "active": True if record.active is None else bool(record.active),
            "created_at": record.created_at or now,
            "updated_at": record.updated_at or now,
        }
        try:
            with _storage_errors():
                await self._session.execute(insert(ApiKey).values(**values))
        except IntegrityError as e:
            raise ConflictError("API key", record.id) from e
        return await self.find_by_id(record.id)

    async def find_by_id(self, key_id: str) -> ApiKey:
        """Load a key by id or raise ``NotFoundError``."""
        with _storage_errors():
            stmt = select(ApiKey).where(ApiKey.id == key_id)
            result = await self._session.execute(stmt)
            api_key = result.scalar_one_or_none()
        if api_key is None:
            raise NotFoundError("API key", key_id)
        return api_key

    async def get_or_none(self, key_id: str) -> ApiKey | None:
        """Load a key by id, ``None`` when absent."""
        try:
            return await self.find_by_id(key_id)
        except NotFoundError:
            return None

    async def list_all(self) -> list[ApiKey]:
        """List all keys in creation order."""
        stmt = select(ApiKey).order_by(
            ApiKey.created_at, literal_column("api_keys.rowid")
        )
        with _storage_errors():
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

    async def deactivate(self, key_id: str) -> ApiKey:
        """Mark a key inactive. Idempotent; no write if already inactive."""
        api_key = await self.find_by_id(key_id)
        if api_key.active:
            api_key.active = False
            with _storage_errors():
                await self._session.flush()
        return api_key

    async def delete(self, key_id: str) -> None:
        """Permanently remove a key. Raises ``NotFoundError`` if absent."""
        with _storage_errors():
            result = await self._session.execute(
                delete(ApiKey).where(ApiKey.id == key_id)
            )
        if result.rowcount == 0:
            raise NotFoundError("API key", key_id)

    # ── Settings ─────────────────────────────────────────────────

    async def upsert_setting(self, key: str, value: str) -> Setting:
        """Create or overwrite a setting and return the stored row."""
        stmt = sqlite_insert(Setting).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Setting.key],
            set_={"value": stmt.excluded.value},
        )
        with _storage_errors():
            await self._session.execute(stmt)
        return await self._load_setting(key, populate_existing=True)

    async def get_setting(self, key: str) -> str:
        """Return a setting's value or raise ``NotFoundError``."""
        setting = await self._load_setting(key)
        return setting.value

    async def get_setting_row(self, key: str) -> Setting:
        """Return the full setting row or raise ``NotFoundError``."""
        return await self._load_setting(key)

    async def _load_setting(
        self, key: str, *, populate_existing: bool = False
    ) -> Setting:
        stmt = select(Setting).where(Setting.key == key)
        if populate_existing:
            # The trigger rewrote updated_at behind the identity map's back.
            stmt = stmt.execution_options(populate_existing=True)
        with _storage_errors():
            result = await self._session.execute(stmt)
            setting = result.scalar_one_or_none()
        if setting is None:
            raise NotFoundError("Setting", key)
        return setting
