"""create_activity_notifications_tables

Revision ID: 6f7a8b9c0d1e
Revises: 5e6f7a8b9c0d
Create Date: 2026-10-19 09:25:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "6f7a8b9c0d1e"
down_revision = "5e6f7a8b9c0d"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # task_id has no FK: entries outlive deleted tasks
    op.execute("""
        CREATE TABLE activity_log (
            id          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id  UUID        NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            task_id     UUID,
            user_id     UUID        NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            action      VARCHAR(50) NOT NULL,
            details     JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_activity_log_project_id ON activity_log(project_id)")
    op.execute("CREATE INDEX ix_activity_log_task_id ON activity_log(task_id)")
    op.execute("CREATE INDEX ix_activity_log_user_id ON activity_log(user_id)")
    op.execute("CREATE INDEX ix_activity_log_created_at ON activity_log(created_at)")

    op.execute(
        "CREATE TYPE notification_type AS ENUM "
        "('TASK_ASSIGNED', 'TASK_DUE_SOON', 'TASK_OVERDUE', 'PROJECT_INVITE', 'COMMENT_ADDED')"
    )
    op.execute("""
        CREATE TABLE notifications (
            id          UUID              PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id     UUID              NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type        notification_type NOT NULL,
            message     TEXT              NOT NULL,
            read        BOOLEAN           NOT NULL DEFAULT false,
            related_id  UUID,
            created_at  TIMESTAMPTZ       NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_notifications_user_id ON notifications(user_id)")
    op.execute("CREATE INDEX ix_notifications_user_read ON notifications(user_id, read)")
    op.execute("CREATE INDEX ix_notifications_created_at ON notifications(created_at)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TYPE IF EXISTS notification_type")
    op.execute("DROP TABLE IF EXISTS activity_log")
