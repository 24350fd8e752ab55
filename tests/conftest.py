"""Shared test fixtures for keygate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from keygate.auth.hasher import SecretHasher
from keygate.config.schema import AuthConfig, DatabaseConfig, KeygateConfig
from keygate.core.retry import RetryConfig
from keygate.store.models import Base

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

# Argon2id with the smallest cost that still exercises the real code path.
FAST_AUTH = AuthConfig(time_cost=1, memory_cost=1024, verify_workers=2)

NO_WAIT_RETRY = RetryConfig(max_retries=2, base_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture
async def session_factory() -> async_sessionmaker[AsyncSession]:  # type: ignore[misc]
    """In-memory SQLite session factory with FK enforcement."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fks(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncSession:  # type: ignore[misc]
    """A single session on the in-memory database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def hasher() -> SecretHasher:
    return SecretHasher(FAST_AUTH)


@pytest.fixture
def file_config(tmp_path: Path) -> KeygateConfig:
    """Config pointing at a fresh on-disk database with cheap hashing."""
    db_path = tmp_path / "keygate.db"
    return KeygateConfig(
        database=DatabaseConfig(url=f"sqlite+aiosqlite:///{db_path}"),
        auth=FAST_AUTH,
    )


@pytest.fixture
def auth_config() -> AuthConfig:
    return FAST_AUTH


@pytest.fixture
def no_wait_retry() -> RetryConfig:
    return NO_WAIT_RETRY


@pytest.fixture(autouse=True)
def _restore_keygate_logger():
    """Undo ``setup_logging`` so handlers bound to captured streams never leak."""
    logger = logging.getLogger("keygate")
    level = logger.level
    handlers = list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(level)
