"""Create ledger tables

Revision ID: 0001_ledger_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_ledger_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "paypal_order_metadata",
        sa.Column("order_id", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("base_coins", sa.Integer(), nullable=False),
        sa.Column("bonus_coins", sa.Integer(), nullable=False),
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
        sa.Column("bonus_percentage", sa.Integer(), nullable=False),
        sa.Column("packages", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("order_id", name=op.f("pk_paypal_order_metadata")),
    )
    op.create_index(op.f("ix_paypal_order_metadata_user_id"), "paypal_order_metadata", ["user_id"], unique=False)
    op.create_index(op.f("ix_paypal_order_metadata_expires_at"), "paypal_order_metadata", ["expires_at"], unique=False)

    op.create_table(
        "dao_coupons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("bonus_percentage", sa.Integer(), nullable=False),
        sa.Column("min_purchase_amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("current_uses", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_dao_coupons")),
        sa.UniqueConstraint("code", name=op.f("uq_dao_coupons_code")),
    )

    op.create_table(
        "dao_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
        sa.Column("bonus_coins", sa.Integer(), nullable=False),
        sa.Column("package_type", sa.String(length=255), nullable=True),
        sa.Column("provider_order_id", sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_dao_transactions")),
        sa.UniqueConstraint("provider_order_id", name=op.f("uq_dao_transactions_provider_order_id")),
    )
    op.create_index(op.f("ix_dao_transactions_user_id"), "dao_transactions", ["user_id"], unique=False)

    op.create_table(
        "player_subscriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("tier", sa.Integer(), nullable=False),
        sa.Column("tier_name", sa.String(length=50), nullable=False),
        sa.Column("qi_boost_percent", sa.Integer(), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("price_paid", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("payment_id", sa.String(length=100), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_player_subscriptions")),
        sa.UniqueConstraint("payment_id", name=op.f("uq_player_subscriptions_payment_id")),
    )
    op.create_index(op.f("ix_player_subscriptions_user_id"), "player_subscriptions", ["user_id"], unique=False)

    op.create_table(
        "autorenew_purchases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("payment_id", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_renewed_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_autorenew_purchases")),
        sa.UniqueConstraint("user_id", "payment_id", name=op.f("uq_autorenew_purchases_user_id_payment_id")),
    )
    op.create_index(op.f("ix_autorenew_purchases_user_id"), "autorenew_purchases", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_autorenew_purchases_user_id"), table_name="autorenew_purchases")
    op.drop_table("autorenew_purchases")
    op.drop_index(op.f("ix_player_subscriptions_user_id"), table_name="player_subscriptions")
    op.drop_table("player_subscriptions")
    op.drop_index(op.f("ix_dao_transactions_user_id"), table_name="dao_transactions")
    op.drop_table("dao_transactions")
    op.drop_table("dao_coupons")
    op.drop_index(op.f("ix_paypal_order_metadata_expires_at"), table_name="paypal_order_metadata")
    op.drop_index(op.f("ix_paypal_order_metadata_user_id"), table_name="paypal_order_metadata")
    op.drop_table("paypal_order_metadata")
