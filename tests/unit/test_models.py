"""Tests for the credential store models and schema."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

from keygate.store.models import ApiKey, Setting

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class TestApiKeyModel:
    async def test_defaults(self, db_session: AsyncSession):
        key = ApiKey(secret_hash="$argon2id$x", label="ci", owner="ops")
        db_session.add(key)
        await db_session.flush()

        assert len(key.id) == 36
        assert key.is_admin is False
        assert key.active is True
        assert key.created_at is not None
        assert key.updated_at is not None

    async def test_raw_insert_defaults_is_admin_false(self, db_session: AsyncSession):
        await db_session.execute(
            text(
                "INSERT INTO api_keys (id, secret_hash, label, owner, active,"
                " created_at, updated_at) VALUES ('k1', 'h', 'l', 'o', 1,"
                " '2026-01-01 00:00:00', '2026-01-01 00:00:00')"
            )
        )
        row = await db_session.execute(
            text("SELECT is_admin FROM api_keys WHERE id = 'k1'")
        )
        assert row.scalar_one() == 0

    def test_repr_omits_hash(self):
        key = ApiKey(id="k", secret_hash="$argon2id$secret", label="l", owner="o")
        assert "argon2" not in repr(key)


class TestSettingModel:
    async def test_updated_at_defaults_to_iso_utc(self, db_session: AsyncSession):
        db_session.add(Setting(key="site_name", value="demo"))
        await db_session.flush()
        row = await db_session.execute(
            text("SELECT updated_at FROM settings WHERE key = 'site_name'")
        )
        stamp = row.scalar_one()
        assert stamp.endswith("Z")
        assert "T" in stamp

    async def test_trigger_installed(self, db_session: AsyncSession):
        row = await db_session.execute(
            text(
                "SELECT name FROM sqlite_master WHERE type = 'trigger'"
                " AND tbl_name = 'settings'"
            )
        )
        assert row.scalar_one() == "update_settings_updated_at"
