"""Tests for Alembic migrations."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def alembic_config(tmp_path, monkeypatch):
    """Create an Alembic config pointing to a temp SQLite DB."""
    monkeypatch.delenv("KEYGATE_DATABASE_URL", raising=False)
    db_path = tmp_path / "test.db"
    cfg = Config(str(REPO_ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    cfg.attributes["configure_logger"] = False
    return cfg, db_path


def _tables(db_path) -> set[str]:
    conn = sqlite3.connect(str(db_path))
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    tables = {row[0] for row in rows}
    conn.close()
    return tables


def _columns(db_path, table: str) -> set[str]:
    conn = sqlite3.connect(str(db_path))
    columns = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
    conn.close()
    return columns


class TestMigrations:
    def test_upgrade_to_001(self, alembic_config) -> None:
        cfg, db_path = alembic_config
        command.upgrade(cfg, "001")

        assert "api_keys" in _tables(db_path)
        assert "settings" not in _tables(db_path)
        assert "is_admin" not in _columns(db_path, "api_keys")

    def test_upgrade_to_head(self, alembic_config) -> None:
        cfg, db_path = alembic_config
        command.upgrade(cfg, "head")

        assert {"api_keys", "settings"} <= _tables(db_path)
        assert "is_admin" in _columns(db_path, "api_keys")

        conn = sqlite3.connect(str(db_path))
        triggers = {
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='trigger'"
            )
        }
        conn.close()
        assert "update_settings_updated_at" in triggers

    def test_existing_keys_become_standard(self, alembic_config) -> None:
        cfg, db_path = alembic_config
        command.upgrade(cfg, "001")

        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO api_keys (id, secret_hash, label, owner, active,"
            " created_at, updated_at) VALUES ('k', 'h', 'l', 'o', 1,"
            " '2026-01-01', '2026-01-01')"
        )
        conn.commit()
        conn.close()

        command.upgrade(cfg, "head")

        conn = sqlite3.connect(str(db_path))
        is_admin = conn.execute("SELECT is_admin FROM api_keys").fetchone()[0]
        conn.close()
        assert is_admin == 0

    def test_trigger_advances_updated_at(self, alembic_config) -> None:
        cfg, db_path = alembic_config
        command.upgrade(cfg, "head")

        conn = sqlite3.connect(str(db_path))
        conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'v1')")
        first = conn.execute("SELECT updated_at FROM settings").fetchone()[0]
        conn.execute("UPDATE settings SET value = 'v2' WHERE key = 'k'")
        second = conn.execute("SELECT updated_at FROM settings").fetchone()[0]
        conn.commit()
        conn.close()
        assert second > first

    def test_downgrade_to_001(self, alembic_config) -> None:
        cfg, db_path = alembic_config
        command.upgrade(cfg, "head")
        command.downgrade(cfg, "001")

        assert "settings" not in _tables(db_path)
        assert "is_admin" not in _columns(db_path, "api_keys")
