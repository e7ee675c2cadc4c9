"""initial goldfolio tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "gold_purchases",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("weight_grams", sa.Numeric(10, 3), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("purchase_price_per_gram", sa.Numeric(10, 2), nullable=False),
        sa.Column("carat", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("carat >= 1 AND carat <= 24", name="ck_gold_purchases_carat_range"),
        sa.CheckConstraint("weight_grams > 0", name="ck_gold_purchases_weight_positive"),
        sa.CheckConstraint("purchase_price_per_gram > 0", name="ck_gold_purchases_price_positive"),
        sa.PrimaryKeyConstraint("id", name="pk_gold_purchases"),
    )
    op.create_index("ix_gold_purchases_user_id", "gold_purchases", ["user_id"])
    op.create_index("ix_gold_purchases_purchase_date", "gold_purchases", ["purchase_date"])

    op.create_table(
        "gold_price_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("price_per_gram_24k", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_per_gram_22k", sa.Numeric(12, 2), nullable=True),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("market_date", sa.Date(), nullable=False),
        sa.Column("source", sa.String(20), nullable=False, server_default="api"),
        sa.PrimaryKeyConstraint("id", name="pk_gold_price_history"),
    )
    op.create_index("ix_gold_price_history_observed_at", "gold_price_history", ["observed_at"])
    op.create_index(
        "uq_gold_price_history_market_date",
        "gold_price_history",
        ["market_date"],
        unique=True,
        postgresql_where=sa.text("source <> 'manual'"),
    )

    op.create_table(
        "portfolio_metrics",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("investment", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("current_value", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total_weight_grams", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_portfolio_metrics"),
        sa.UniqueConstraint("user_id", "date", name="uq_portfolio_metrics_user_id_date"),
    )
    op.create_index("ix_portfolio_metrics_user_id", "portfolio_metrics", ["user_id"])

    op.create_table(
        "price_source_state",
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("last_good_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("provider", name="pk_price_source_state"),
    )

    # Seed observations carried over from the first manual entries
    op.execute(
        "INSERT INTO gold_price_history (id, price_per_gram_24k, price_per_gram_22k, observed_at, market_date, source) VALUES "
        "('7c1f7a52-3a0e-4d1b-9c55-2f4d7f0b1a01', 8662, 7940, '2025-03-01 08:30:00+00', '2025-03-01', 'manual'), "
        "('7c1f7a52-3a0e-4d1b-9c55-2f4d7f0b1a02', 9988, 9155, '2025-07-14 08:30:00+00', '2025-07-14', 'manual')"
    )


def downgrade() -> None:
    op.drop_table("price_source_state")
    op.drop_index("ix_portfolio_metrics_user_id", table_name="portfolio_metrics")
    op.drop_table("portfolio_metrics")
    op.drop_index("uq_gold_price_history_market_date", table_name="gold_price_history")
    op.drop_index("ix_gold_price_history_observed_at", table_name="gold_price_history")
    op.drop_table("gold_price_history")
    op.drop_index("ix_gold_purchases_purchase_date", table_name="gold_purchases")
    op.drop_index("ix_gold_purchases_user_id", table_name="gold_purchases")
    op.drop_table("gold_purchases")
