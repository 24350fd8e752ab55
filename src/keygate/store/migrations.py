"""Lightweight schema migrations for SQLite.

Runs on startup for file-based SQLite databases. Creates missing tables
and brings older ``api_keys`` tables forward. Alembic revisions under
``alembic/versions`` describe the same schema for managed upgrades.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from keygate.store.models import SETTINGS_TRIGGER_SQL, Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Apply pending schema migrations.

    Currently handles:
    - Creating ``api_keys`` and ``settings`` when absent.
    - Adding ``is_admin`` to ``api_keys`` tables created before it existed.
    - Installing the ``settings.updated_at`` trigger.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        rows = await conn.exec_driver_sql("PRAGMA table_info(api_keys)")
        columns = {row[1] for row in rows}

        if "is_admin" not in columns:
            logger.info("Adding 'is_admin' column to api_keys table")
            await conn.exec_driver_sql(
                "ALTER TABLE api_keys ADD COLUMN is_admin INTEGER NOT NULL DEFAULT 0"
            )

        await conn.exec_driver_sql(SETTINGS_TRIGGER_SQL)
