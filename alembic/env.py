"""Alembic environment for the keygate credential store."""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config

if config.config_file_name is not None and config.attributes.get(
    "configure_logger", True
):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

from keygate.store.models import Base  # noqa: E402

target_metadata = Base.metadata


def _database_url() -> str:
    """Configured URL, overridden by ``$KEYGATE_DATABASE_URL`` when set."""
    url = os.environ.get("KEYGATE_DATABASE_URL") or config.get_main_option(
        "sqlalchemy.url", ""
    )
    if ":///" in url:
        prefix, path = url.split(":///", 1)
        url = prefix + ":///" + os.path.expanduser(path)
    return url


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:  # type: ignore[no-untyped-def]
    # SQLite cannot ALTER most column properties in place.
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations(url: str) -> None:
    """Run migrations through the aiosqlite driver."""
    connectable = async_engine_from_config(
        {"sqlalchemy.url": url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Connect and apply migrations, sync or async depending on the driver."""
    url = _database_url()

    if "+aiosqlite" in url:
        asyncio.run(run_async_migrations(url))
        return

    connectable = engine_from_config(
        {"sqlalchemy.url": url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        do_run_migrations(connection)

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
