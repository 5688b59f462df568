"""create_users_tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "1a2b3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                            UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            email                         VARCHAR(255) NOT NULL UNIQUE,
            password_hash                 VARCHAR(255) NOT NULL,
            name                          VARCHAR(100) NOT NULL,
            avatar                        VARCHAR(500),
            email_verified                BOOLEAN      NOT NULL DEFAULT false,
            email_verification_token_hash VARCHAR(64),
            email_verification_expires    TIMESTAMPTZ,
            password_reset_token_hash     VARCHAR(64),
            password_reset_expires        TIMESTAMPTZ,
            created_at                    TIMESTAMPTZ  NOT NULL DEFAULT now(),
            updated_at                    TIMESTAMPTZ  NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_users_email ON users(email)")
    op.execute("CREATE INDEX ix_users_email_verification_token_hash ON users(email_verification_token_hash)")
    op.execute("CREATE INDEX ix_users_password_reset_token_hash ON users(password_reset_token_hash)")

    op.execute("""
        CREATE TABLE refresh_tokens (
            id          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            token_hash  VARCHAR(64) NOT NULL UNIQUE,
            user_id     UUID        NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            expires_at  TIMESTAMPTZ NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_refresh_tokens_user_id ON refresh_tokens(user_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS refresh_tokens")
    op.execute("DROP TABLE IF EXISTS users")
