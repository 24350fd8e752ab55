"""Settings store handed to whichever component consumes configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keygate.core.errors import NotFoundError
from keygate.core.retry import RetryConfig, retry_read
from keygate.store.repository import CredentialStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SettingValue:
    """A setting as read back from the database."""

    key: str
    value: str
    updated_at: str


class SettingsStore:
    """Key/value settings, one committed transaction per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retry: RetryConfig | None = None,
    ) -> None:
        self._factory = session_factory
        self._retry = retry or RetryConfig()

    async def get(self, key: str) -> SettingValue:
        """Return the setting for *key* or raise ``NotFoundError``."""

        async def _read() -> SettingValue:
            async with self._factory() as session:
                row = await CredentialStore(session).get_setting_row(key)
                return SettingValue(row.key, row.value, row.updated_at)

        return await retry_read(_read, self._retry)

    async def get_or_none(self, key: str) -> str | None:
        try:
            return (await self.get(key)).value
        except NotFoundError:
            return None

    async def set(self, key: str, value: str) -> SettingValue:
        """Create or overwrite *key*. Durable once this returns."""
        async with self._factory() as session:
            row = await CredentialStore(session).upsert_setting(key, value)
            await session.commit()
            result = SettingValue(row.key, row.value, row.updated_at)
        logger.info("Setting updated", extra={"setting": key})
        return result
