"""create_tasks_tables

Revision ID: 3c4d5e6f7a8b
Revises: 2b3c4d5e6f7a
Create Date: 2026-10-19 09:10:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "3c4d5e6f7a8b"
down_revision = "2b3c4d5e6f7a"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE TYPE task_priority AS ENUM ('LOW', 'MEDIUM', 'HIGH', 'URGENT')")
    op.execute(
        "CREATE TYPE task_status AS ENUM "
        "('TODO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE', 'CANCELLED')"
    )

    op.execute("""
        CREATE TABLE tasks (
            id          UUID          PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id  UUID          NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            title       VARCHAR(500)  NOT NULL,
            description TEXT,
            assignee_id UUID          REFERENCES users(id) ON DELETE SET NULL,
            created_by  UUID          NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            priority    task_priority NOT NULL DEFAULT 'MEDIUM',
            status      task_status   NOT NULL DEFAULT 'TODO',
            due_date    TIMESTAMPTZ,
            version     INTEGER       NOT NULL DEFAULT 1,
            created_at  TIMESTAMPTZ   NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ   NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_tasks_project_id ON tasks(project_id)")
    op.execute("CREATE INDEX ix_tasks_assignee_id ON tasks(assignee_id)")
    op.execute("CREATE INDEX ix_tasks_status ON tasks(status)")
    op.execute("CREATE INDEX ix_tasks_due_date ON tasks(due_date)")

    op.execute("""
        CREATE TABLE subtasks (
            id          UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            task_id     UUID         NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            title       VARCHAR(500) NOT NULL,
            completed   BOOLEAN      NOT NULL DEFAULT false,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ  NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_subtasks_task_id ON subtasks(task_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS subtasks")
    op.execute("DROP TABLE IF EXISTS tasks")
    op.execute("DROP TYPE IF EXISTS task_status")
    op.execute("DROP TYPE IF EXISTS task_priority")
