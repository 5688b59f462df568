"""create_projects_tables

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-19 09:05:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "2b3c4d5e6f7a"
down_revision = "1a2b3c4d5e6f"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE TYPE project_role AS ENUM ('owner', 'admin', 'member', 'viewer')")

    op.execute("""
        CREATE TABLE projects (
            id          UUID             PRIMARY KEY DEFAULT gen_random_uuid(),
            name        VARCHAR(100)     NOT NULL,
            description TEXT,
            owner_id    UUID             NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            progress    DOUBLE PRECISION NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ      NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ      NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_projects_owner_id ON projects(owner_id)")
    op.execute("CREATE INDEX ix_projects_updated_at ON projects(updated_at)")

    op.execute("""
        CREATE TABLE project_members (
            id          UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id  UUID         NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id     UUID         NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role        project_role NOT NULL DEFAULT 'member',
            joined_at   TIMESTAMPTZ  NOT NULL DEFAULT now(),
            CONSTRAINT uq_project_members_project_user UNIQUE (project_id, user_id)
        )
    """)
    op.execute("CREATE INDEX ix_project_members_project_id ON project_members(project_id)")
    op.execute("CREATE INDEX ix_project_members_user_id ON project_members(user_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS project_members")
    op.execute("DROP TABLE IF EXISTS projects")
    op.execute("DROP TYPE IF EXISTS project_role")
