"""Initial schema for LiveEdge.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates:
- match_snapshots: latest live state per match (written by the feed ingester)
- picks: emitted picks
- settlements: one row per settled pick (unique pick_id)
- job_runs: task audit log
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Live match snapshots
    op.create_table(
        "match_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.String(length=50), nullable=False),
        sa.Column("competition_id", sa.String(length=50), nullable=True),
        sa.Column("competition_name", sa.String(length=200), nullable=True),
        sa.Column("home_team", sa.String(length=200), nullable=True),
        sa.Column("away_team", sa.String(length=200), nullable=True),
        sa.Column("minute", sa.Integer(), nullable=True),
        sa.Column("home_goals", sa.Integer(), nullable=True),
        sa.Column("away_goals", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("home_stats", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("away_stats", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("odds", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id"),
    )
    op.create_index("idx_match_snapshots_status", "match_snapshots", ["status"])

    # Emitted picks
    op.create_table(
        "picks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pick_id", sa.String(length=40), nullable=False),
        sa.Column("strategy_id", sa.String(length=50), nullable=False),
        sa.Column("match_id", sa.String(length=50), nullable=False),
        sa.Column("competition_id", sa.String(length=50), nullable=True),
        sa.Column("market", sa.String(length=20), nullable=False),
        sa.Column("selection", sa.String(length=10), nullable=False),
        sa.Column("line", sa.Float(), nullable=True),
        sa.Column("strength", sa.Float(), nullable=False),
        sa.Column("model_probability", sa.Float(), nullable=False),
        sa.Column("implied_probability", sa.Float(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("edge", sa.Float(), nullable=True),
        sa.Column("kelly_fraction", sa.Float(), nullable=True),
        sa.Column("stake_units", sa.Float(), nullable=False),
        sa.Column("stake_scale", sa.Float(), nullable=True),
        sa.Column("tier", sa.String(length=2), nullable=False),
        sa.Column("priceable", sa.Boolean(), nullable=True),
        sa.Column("edge_ok", sa.Boolean(), nullable=True),
        sa.Column("fallback", sa.Boolean(), nullable=True),
        sa.Column("minute", sa.Integer(), nullable=True),
        sa.Column("home_goals", sa.Integer(), nullable=True),
        sa.Column("away_goals", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("config_version", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="PENDING"),
        sa.Column("emitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pick_id"),
    )
    op.create_index(
        "idx_picks_pending",
        "picks",
        ["match_id"],
        postgresql_where=sa.text("status = 'PENDING'"),
    )
    op.create_index("idx_picks_emitted", "picks", ["emitted_at"])
    op.create_index("idx_picks_strategy", "picks", ["strategy_id", "emitted_at"])

    # Settlements - unique pick_id keeps settlement idempotent
    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pick_id", sa.String(length=40), nullable=False),
        sa.Column("strategy_id", sa.String(length=50), nullable=False),
        sa.Column("match_id", sa.String(length=50), nullable=False),
        sa.Column("competition_id", sa.String(length=50), nullable=True),
        sa.Column("market", sa.String(length=20), nullable=False),
        sa.Column("selection", sa.String(length=10), nullable=False),
        sa.Column("line", sa.Float(), nullable=True),
        sa.Column("outcome", sa.String(length=10), nullable=False),
        sa.Column("skip_reason", sa.Text(), nullable=True),
        sa.Column("home_goals", sa.Integer(), nullable=False),
        sa.Column("away_goals", sa.Integer(), nullable=False),
        sa.Column("stake_units", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("profit_units", sa.Float(), nullable=False),
        sa.Column("closing_price", sa.Float(), nullable=True),
        sa.Column("clv_percent", sa.Float(), nullable=True),
        sa.Column("emitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["pick_id"], ["picks.pick_id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pick_id"),
    )
    op.create_index("idx_settlements_settled", "settlements", ["settled_at"])
    op.create_index("idx_settlements_strategy", "settlements", ["strategy_id", "settled_at"])

    # Job runs
    op.create_table(
        "job_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("records_processed", sa.Integer(), nullable=True, default=0),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("job_runs")
    op.drop_index("idx_settlements_strategy", table_name="settlements")
    op.drop_index("idx_settlements_settled", table_name="settlements")
    op.drop_table("settlements")
    op.drop_index("idx_picks_strategy", table_name="picks")
    op.drop_index("idx_picks_emitted", table_name="picks")
    op.drop_index("idx_picks_pending", table_name="picks")
    op.drop_table("picks")
    op.drop_index("idx_match_snapshots_status", table_name="match_snapshots")
    op.drop_table("match_snapshots")
