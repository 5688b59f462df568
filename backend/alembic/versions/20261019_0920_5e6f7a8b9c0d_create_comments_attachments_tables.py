"""create_comments_attachments_tables

Revision ID: 5e6f7a8b9c0d
Revises: 4d5e6f7a8b9c
Create Date: 2026-10-19 09:20:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "5e6f7a8b9c0d"
down_revision = "4d5e6f7a8b9c"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE comments (
            id          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            task_id     UUID        NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            user_id     UUID        NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content     TEXT        NOT NULL,
            is_edited   BOOLEAN     NOT NULL DEFAULT false,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_comments_task_id ON comments(task_id)")
    op.execute("CREATE INDEX ix_comments_user_id ON comments(user_id)")

    op.execute("""
        CREATE TABLE attachments (
            id          UUID          PRIMARY KEY DEFAULT gen_random_uuid(),
            task_id     UUID          NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            file_name   VARCHAR(255)  NOT NULL,
            file_url    VARCHAR(1000) NOT NULL,
            file_type   VARCHAR(100)  NOT NULL,
            file_size   BIGINT        NOT NULL,
            uploaded_by UUID          NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at  TIMESTAMPTZ   NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_attachments_task_id ON attachments(task_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS attachments")
    op.execute("DROP TABLE IF EXISTS comments")
