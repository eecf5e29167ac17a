"""soft_delete

Revision ID: 0002_soft_delete
Revises: 0001_init
Create Date: 2026-10-19 12:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_soft_delete"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("goals") as batch:
        batch.add_column(sa.Column("is_deleted", sa.Boolean(), server_default="0", nullable=False))
        batch.add_column(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    with op.batch_alter_table("tasks") as batch:
        batch.add_column(sa.Column("is_deleted", sa.Boolean(), server_default="0", nullable=False))
        batch.add_column(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    op.create_index("ix_goals_active_order", "goals", ["is_deleted", "is_archived", "sort_order"])
    op.create_index("ix_tasks_active_order", "tasks", ["is_deleted", "is_completed", "sort_order"])


def downgrade() -> None:
    op.drop_index("ix_tasks_active_order", table_name="tasks")
    op.drop_index("ix_goals_active_order", table_name="goals")
    with op.batch_alter_table("tasks") as batch:
        batch.drop_column("deleted_at")
        batch.drop_column("is_deleted")
    with op.batch_alter_table("goals") as batch:
        batch.drop_column("deleted_at")
        batch.drop_column("is_deleted")
