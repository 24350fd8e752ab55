"""Main CLI application.

Click commands for keygate: ``keys create/list/revoke/delete``,
``settings get/set`` and ``serve``.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click

from keygate import __version__
from keygate.config.loader import load_config
from keygate.core.errors import ConfigError, KeygateError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from keygate.config.schema import KeygateConfig
    from keygate.keys.manager import IssuedKey, KeyInfo, KeyManager
    from keygate.store.settings import SettingsStore, SettingValue


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> KeygateConfig:
    """Load config with user-friendly error handling."""
    try:
        config = load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy

    from keygate.core.logging import setup_logging

    setup_logging(config.logging)
    return config


async def _open_manager(config: KeygateConfig) -> tuple[KeyManager, AsyncEngine]:
    """Create the store and a KeyManager over it."""
    from keygate.auth.hasher import SecretHasher
    from keygate.keys.manager import KeyManager
    from keygate.store.db import create_db

    factory, engine = await create_db(config.database)
    manager = KeyManager(
        factory, SecretHasher(config.auth), config.retry.to_retry_config()
    )
    return manager, engine


async def _open_settings(config: KeygateConfig) -> tuple[SettingsStore, AsyncEngine]:
    """Create the store and a SettingsStore over it."""
    from keygate.store.db import create_db
    from keygate.store.settings import SettingsStore

    factory, engine = await create_db(config.database)
    return SettingsStore(factory, config.retry.to_retry_config()), engine


def _fmt_time(value: object) -> str:
    strftime = getattr(value, "strftime", None)
    return strftime("%Y-%m-%d %H:%M:%S") if strftime else str(value)


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="keygate")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """keygate - API key authentication for SQLite-backed services.

    Issue, list, revoke and delete API keys; manage settings; serve the API.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── keys ─────────────────────────────────────────────────────────


@cli.group()
def keys() -> None:
    """Manage API keys."""


@keys.command("create")
@click.option("--label", required=True, help="Human-readable description.")
@click.option("--owner", required=True, help="Owner or contact for the key.")
@click.option(
    "--admin", "is_admin", is_flag=True, default=False, help="Issue an admin key."
)
@click.pass_context
def keys_create(ctx: click.Context, label: str, owner: str, is_admin: bool) -> None:
    """Create a key and print its one-time secret."""
    config = _load_config(ctx.obj["config_path"])
    try:
        issued = asyncio.run(_keys_create_async(config, label, owner, is_admin))
    except (KeygateError, ValueError) as e:
        _error(str(e))
        return

    click.echo(f"Key ID:  {issued.id}")
    click.echo(f"Secret:  {issued.secret}")
    click.echo(f"Label:   {issued.label}")
    click.echo(f"Owner:   {issued.owner}")
    click.echo(f"Admin:   {'yes' if issued.is_admin else 'no'}")
    click.echo()
    click.echo("Store the secret now. It cannot be shown again.")


async def _keys_create_async(
    config: KeygateConfig, label: str, owner: str, is_admin: bool
) -> IssuedKey:
    """Async implementation for the keys create command."""
    manager, engine = await _open_manager(config)
    try:
        return await manager.create(label, owner, is_admin=is_admin)
    finally:
        await engine.dispose()


@keys.command("list")
@click.option(
    "--verbose", is_flag=True, default=False, help="Flag hashes due for rehash."
)
@click.pass_context
def keys_list(ctx: click.Context, verbose: bool) -> None:
    """List all keys (never their secrets)."""
    config = _load_config(ctx.obj["config_path"])
    try:
        key_list, stale = asyncio.run(_keys_list_async(config, verbose))
    except KeygateError as e:
        _error(str(e))
        return

    if not key_list:
        click.echo("No API keys found.")
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Label")
    table.add_column("Owner")
    table.add_column("Admin")
    table.add_column("Active")
    table.add_column("Created")
    table.add_column("Updated")
    if verbose:
        table.add_column("Rehash")

    for info in key_list:
        row = [
            info.id,
            info.label,
            info.owner,
            "yes" if info.is_admin else "no",
            "yes" if info.active else "revoked",
            _fmt_time(info.created_at),
            _fmt_time(info.updated_at),
        ]
        if verbose:
            row.append("needed" if info.id in stale else "-")
        table.add_row(*row)

    Console(width=200).print(table)


async def _keys_list_async(
    config: KeygateConfig, verbose: bool
) -> tuple[list[KeyInfo], set[str]]:
    """Async implementation for the keys list command."""
    manager, engine = await _open_manager(config)
    try:
        key_list = await manager.list()
        stale = await manager.stale_hashes() if verbose else set()
        return key_list, stale
    finally:
        await engine.dispose()


@keys.command("revoke")
@click.argument("key_id")
@click.pass_context
def keys_revoke(ctx: click.Context, key_id: str) -> None:
    """Mark a key inactive. Its record is kept."""
    config = _load_config(ctx.obj["config_path"])
    try:
        asyncio.run(_keys_revoke_async(config, key_id))
    except KeygateError as e:
        _error(str(e))
        return
    click.echo(f"Revoked: {key_id}")


async def _keys_revoke_async(config: KeygateConfig, key_id: str) -> KeyInfo:
    """Async implementation for the keys revoke command."""
    manager, engine = await _open_manager(config)
    try:
        return await manager.revoke(key_id)
    finally:
        await engine.dispose()


@keys.command("delete")
@click.argument("key_id")
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation.")
@click.pass_context
def keys_delete(ctx: click.Context, key_id: str, yes: bool) -> None:
    """Permanently delete a key. This cannot be undone."""
    if not yes:
        click.confirm(f"Permanently delete key {key_id}?", abort=True)
    config = _load_config(ctx.obj["config_path"])
    try:
        asyncio.run(_keys_delete_async(config, key_id))
    except KeygateError as e:
        _error(str(e))
        return
    click.echo(f"Deleted: {key_id}")


async def _keys_delete_async(config: KeygateConfig, key_id: str) -> None:
    """Async implementation for the keys delete command."""
    manager, engine = await _open_manager(config)
    try:
        await manager.delete(key_id)
    finally:
        await engine.dispose()


# ── settings ─────────────────────────────────────────────────────


@cli.group()
def settings() -> None:
    """Read and write persisted settings."""


@settings.command("get")
@click.argument("key")
@click.pass_context
def settings_get(ctx: click.Context, key: str) -> None:
    """Print the value of KEY."""
    config = _load_config(ctx.obj["config_path"])
    try:
        setting = asyncio.run(_settings_get_async(config, key))
    except KeygateError as e:
        _error(str(e))
        return
    click.echo(setting.value)


async def _settings_get_async(config: KeygateConfig, key: str) -> SettingValue:
    store, engine = await _open_settings(config)
    try:
        return await store.get(key)
    finally:
        await engine.dispose()


@settings.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Create or overwrite KEY with VALUE."""
    config = _load_config(ctx.obj["config_path"])
    try:
        setting = asyncio.run(_settings_set_async(config, key, value))
    except KeygateError as e:
        _error(str(e))
        return
    click.echo(f"{setting.key} = {setting.value}  (updated {setting.updated_at})")


async def _settings_set_async(
    config: KeygateConfig, key: str, value: str
) -> SettingValue:
    store, engine = await _open_settings(config)
    try:
        return await store.set(key, value)
    finally:
        await engine.dispose()


# ── serve ────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Host to bind to (overrides config).")
@click.option(
    "--port", type=int, default=None, help="Port to bind to (overrides config)."
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server."""
    import uvicorn

    from keygate.api.app import create_app

    config = _load_config(ctx.obj["config_path"])

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.api.host,
        port=port or config.api.port,
    )
