"""Initial ledger schema

Users, profiles, reports, collections, the append-only transactions
ledger, the reward snapshot table and the redeemable reward catalogue.

Revision ID: 7c2e91d4a0b3
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "7c2e91d4a0b3"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("ledger_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_profiles",
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notifications", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("profile_image", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("waste_type", sa.String(255), nullable=False),
        sa.Column("amount", sa.String(255), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("verification_result", postgresql.JSONB(), nullable=True),
        sa.Column("verification_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("collector_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("verification_id", name="uq_reports_verification_id"),
    )
    op.create_index("ix_reports_user", "reports", ["user_id"])
    op.create_index("ix_reports_status_time", "reports", ["status", "created_at"])

    op.create_table(
        "collected_wastes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "report_id", sa.Integer(),
            sa.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("collector_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("collected_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("report_id", name="uq_collected_wastes_report"),
    )
    op.create_index("ix_collected_wastes_collector", "collected_wastes", ["collector_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        sa.CheckConstraint(
            "type IN ('earned_report', 'earned_collect', 'redeemed')",
            name="ck_transactions_type",
        ),
    )
    op.create_index("ix_transactions_user_time", "transactions", ["user_id", "created_at"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("report_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("collect_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", name="uq_rewards_user"),
    )
    op.create_index("ix_rewards_points_desc", "rewards", ["points"])

    op.create_table(
        "redeemable_rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("collection_info", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("slug", name="uq_redeemable_rewards_slug"),
        sa.CheckConstraint("cost > 0", name="ck_redeemable_rewards_cost_positive"),
    )


def downgrade() -> None:
    op.drop_table("redeemable_rewards")
    op.drop_index("ix_rewards_points_desc", table_name="rewards")
    op.drop_table("rewards")
    op.drop_index("ix_transactions_user_time", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_collected_wastes_collector", table_name="collected_wastes")
    op.drop_table("collected_wastes")
    op.drop_index("ix_reports_status_time", table_name="reports")
    op.drop_index("ix_reports_user", table_name="reports")
    op.drop_table("reports")
    op.drop_table("user_profiles")
    op.drop_table("users")
