"""add recommendation_events table for preference and blocklist signals

Revision ID: add_recommendation_events_table
Revises:
Create Date: 2026-02-03

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "add_recommendation_events_table"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "recommendation_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("work_key", sa.String(), nullable=False),
        sa.Column(
            "event",
            sa.Enum("pref_like", "pref_dislike", "blocked", name="recommendationeventtype"),
            nullable=False,
        ),
        sa.Column("value_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_recommendation_events_user_id", "recommendation_events", ["user_id"])
    op.create_index("ix_recommendation_events_work_key", "recommendation_events", ["work_key"])
    op.create_index(
        "idx_recommendation_events_user_event",
        "recommendation_events",
        ["user_id", "event"],
    )


def downgrade() -> None:
    op.drop_index("idx_recommendation_events_user_event", table_name="recommendation_events")
    op.drop_index("ix_recommendation_events_work_key", table_name="recommendation_events")
    op.drop_index("ix_recommendation_events_user_id", table_name="recommendation_events")
    op.drop_table("recommendation_events")
    sa.Enum(name="recommendationeventtype").drop(op.get_bind(), checkfirst=True)
