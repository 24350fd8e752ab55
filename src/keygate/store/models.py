"""SQLAlchemy models for the credential store.

``api_keys`` holds one row per issued credential; ``settings`` holds
process-wide key/value configuration whose ``updated_at`` column is
maintained by a database trigger rather than by application code.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DDL, DateTime, Index, String, Text, event, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    """Current UTC time for timestamps."""
    return datetime.now(UTC)


# ISO-8601 UTC with millisecond precision, e.g. 2026-02-20T12:00:00.123Z
SQLITE_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

# Strictly increasing: when the clock has not moved past the previous
# value, step one millisecond beyond it.
SETTINGS_TRIGGER_SQL = f"""
CREATE TRIGGER IF NOT EXISTS update_settings_updated_at
AFTER UPDATE ON settings
FOR EACH ROW
BEGIN
    UPDATE settings
    SET updated_at = CASE
        WHEN {SQLITE_NOW} > OLD.updated_at THEN {SQLITE_NOW}
        ELSE strftime('%Y-%m-%dT%H:%M:%fZ', OLD.updated_at, '+0.001 seconds')
    END
    WHERE key = NEW.key;
END
"""


class Base(DeclarativeBase):
    """Declarative base for all keygate models."""


class ApiKey(Base):
    """An issued API credential. Only the Argon2id hash of the secret is kept."""

    __tablename__ = "api_keys"
    __table_args__ = (Index("ix_api_keys_created_at", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    secret_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    owner: Mapped[str] = mapped_column(String(200), nullable=False)
    is_admin: Mapped[bool] = mapped_column(
        default=False, server_default=text("0"), nullable=False
    )
    active: Mapped[bool] = mapped_column(
        default=True, server_default=text("1"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"ApiKey(id={self.id!r}, label={self.label!r}, "
            f"active={self.active!r}, is_admin={self.is_admin!r})"
        )


class Setting(Base):
    """Process-wide configuration value persisted outside the binary."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text(f"({SQLITE_NOW})")
    )


# DDL() runs its statement through %-formatting, so literal % is doubled.
event.listen(
    Setting.__table__,
    "after_create",
    DDL(SETTINGS_TRIGGER_SQL.replace("%", "%%")).execute_if(dialect="sqlite"),
)
