"""create_labels_tables

Revision ID: 4d5e6f7a8b9c
Revises: 3c4d5e6f7a8b
Create Date: 2026-10-19 09:15:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "4d5e6f7a8b9c"
down_revision = "3c4d5e6f7a8b"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE labels (
            id          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id  UUID        NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            name        VARCHAR(50) NOT NULL,
            color       VARCHAR(7)  NOT NULL DEFAULT '#6366f1',
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_labels_project_id ON labels(project_id)")

    op.execute("""
        CREATE TABLE task_labels (
            task_id   UUID NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            label_id  UUID NOT NULL REFERENCES labels(id) ON DELETE CASCADE,
            PRIMARY KEY (task_id, label_id)
        )
    """)
    op.execute("CREATE INDEX ix_task_labels_label_id ON task_labels(label_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS task_labels")
    op.execute("DROP TABLE IF EXISTS labels")
