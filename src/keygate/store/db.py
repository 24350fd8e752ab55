"""Engine and session factory for the SQLite credential store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from keygate.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from keygate.config.schema import DatabaseConfig

logger = logging.getLogger(__name__)


def _expand_url(url: str) -> str:
    """Expand ``~`` in the database path to the user home directory."""
    if "~" in url:
        url = url.replace("~", str(Path.home()))
    return url


def is_memory_url(url: str) -> bool:
    """True for in-memory SQLite URLs (``sqlite+aiosqlite://`` or ``:memory:``)."""
    if not url.startswith("sqlite"):
        return False
    rest = url.split("://", 1)[-1]
    return ":memory:" in url or rest in ("", "/")


async def create_db(
    config: DatabaseConfig,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create async engine and sessionmaker from config.

    File databases get WAL journaling and a busy timeout so many readers
    can proceed while one writer holds the lock. In-memory databases
    share a single connection and build the schema with ``create_all``.
    """
    url = _expand_url(config.url)
    memory = is_memory_url(url)

    if url.startswith("sqlite") and not memory:
        db_path = url.split("///")[-1] if "///" in url else ""
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs: dict[str, object] = {}
    if memory:
        # In-memory SQLite needs StaticPool so all queries share
        # the same connection (and thus the same in-memory DB).
        from sqlalchemy.pool import StaticPool

        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        from sqlalchemy.pool import NullPool

        engine_kwargs["poolclass"] = NullPool

    engine = create_async_engine(url, **engine_kwargs)

    busy_timeout = config.busy_timeout_ms
    use_wal = config.wal and not memory

    @event.listens_for(engine.sync_engine, "connect")
    def _configure_sqlite(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout)}")
        if use_wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    if memory:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    else:
        from keygate.store.migrations import ensure_schema

        await ensure_schema(engine)

    logger.debug("Database ready: %s", "memory" if memory else url.split("///")[-1])

    factory = async_sessionmaker(engine, expire_on_commit=False)
    return factory, engine
