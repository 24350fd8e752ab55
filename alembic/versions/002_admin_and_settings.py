"""Admin flag on API keys, settings table and its updated_at trigger.

Revision ID: 002
Revises: 001
Create Date: 2026-02-20
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: tuple[str, ...] | None = None
depends_on: str | None = None

_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def upgrade() -> None:
    with op.batch_alter_table("api_keys") as batch_op:
        batch_op.add_column(
            sa.Column(
                "is_admin",
                sa.Boolean(),
                nullable=False,
                server_default=sa.text("0"),
            )
        )

    op.create_table(
        "settings",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column(
            "updated_at",
            sa.Text(),
            nullable=False,
            server_default=sa.text(f"({_NOW})"),
        ),
    )

    op.execute(
        f"""
        CREATE TRIGGER update_settings_updated_at
        AFTER UPDATE ON settings
        FOR EACH ROW
        BEGIN
            UPDATE settings
            SET updated_at = CASE
                WHEN {_NOW} > OLD.updated_at THEN {_NOW}
                ELSE strftime('%Y-%m-%dT%H:%M:%fZ', OLD.updated_at, '+0.001 seconds')
            END
            WHERE key = NEW.key;
        END
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS update_settings_updated_at")
    op.drop_table("settings")
    with op.batch_alter_table("api_keys") as batch_op:
        batch_op.drop_column("is_admin")
