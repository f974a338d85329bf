"""Initial schema - schedule_rules, execution_history, project catalog mirror.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_COMPATIBLE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "schedule_rules",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("from_status", sa.String(64), nullable=False),
        sa.Column("to_status", sa.String(64), nullable=False),
        sa.Column("trigger_json", JSON_COMPATIBLE, nullable=False),
        sa.Column("filters_json", JSON_COMPATIBLE, nullable=False),
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_executed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_execution_count", sa.Integer(), nullable=True),
    )

    op.create_table(
        "execution_history",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("batch_id", sa.String(64), nullable=False),
        sa.Column("rule_id", sa.String(64), nullable=True),
        sa.Column("rule_name", sa.Text(), nullable=True),
        sa.Column("rule_hash", sa.String(64), nullable=True),
        sa.Column("execution_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("triggered_by", sa.String(32), nullable=False),
        sa.Column("rules_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rules_updated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rules_skipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("errors", JSON_COMPATIBLE, nullable=False),
        sa.Column("updates", JSON_COMPATIBLE, nullable=False),
        sa.Column("cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_execution_history_batch_id", "execution_history", ["batch_id"])
    op.create_index("ix_execution_history_rule_id", "execution_history", ["rule_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
    )

    op.create_table(
        "project_objectives",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("project_id", sa.String(64), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
    )

    op.create_table(
        "contributor_projects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("project_id", sa.String(64), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column(
            "project_objective_id",
            sa.String(64),
            sa.ForeignKey("project_objectives.id"),
            nullable=True,
        ),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("queue_status", sa.String(64), nullable=True),
        sa.Column("queue_status_changed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_modified_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("attributes", JSON_COMPATIBLE, nullable=False),
    )
    op.create_index("ix_contributor_projects_project_id", "contributor_projects", ["project_id"])
    op.create_index(
        "ix_contributor_projects_project_objective_id",
        "contributor_projects",
        ["project_objective_id"],
    )
    op.create_index("ix_contributor_projects_queue_status", "contributor_projects", ["queue_status"])


def downgrade() -> None:
    op.drop_index("ix_contributor_projects_queue_status", table_name="contributor_projects")
    op.drop_index("ix_contributor_projects_project_objective_id", table_name="contributor_projects")
    op.drop_index("ix_contributor_projects_project_id", table_name="contributor_projects")
    op.drop_table("contributor_projects")
    op.drop_table("project_objectives")
    op.drop_table("projects")
    op.drop_index("ix_execution_history_rule_id", table_name="execution_history")
    op.drop_index("ix_execution_history_batch_id", table_name="execution_history")
    op.drop_table("execution_history")
    op.drop_table("schedule_rules")
