"""m1_core_ledger_tables

Revision ID: 3a1f5c7d9e21
Revises:
Create Date: 2026-10-05 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3a1f5c7d9e21"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default=sa.text("'USER'")),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('USER','TEACHER','ADMIN')", name="ck_users_role"),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="ck_courses_price_non_negative"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )
    op.create_index("idx_courses_owner", "courses", ["owner_id"])
    op.create_index("idx_courses_published", "courses", ["is_published"])

    op.create_table(
        "promo_codes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("discount_type", sa.String(16), nullable=False, server_default=sa.text("'PERCENTAGE'")),
        sa.Column("discount_value", sa.SmallInteger(), nullable=False, server_default=sa.text("100")),
        sa.Column("usage_limit", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("discount_type IN ('PERCENTAGE')", name="ck_promo_codes_discount_type"),
        sa.CheckConstraint("discount_value = 100", name="ck_promo_codes_discount_value_full"),
        sa.CheckConstraint("code = UPPER(code)", name="ck_promo_codes_code_upper"),
        sa.CheckConstraint("usage_limit >= 1", name="ck_promo_codes_usage_limit_positive"),
        sa.CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count_non_negative"),
        sa.CheckConstraint("used_count <= usage_limit", name="ck_promo_codes_used_count_le_limit"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.UniqueConstraint("code", name="uq_promo_codes_code"),
    )
    op.create_index("idx_promo_codes_course", "promo_codes", ["course_id"])
    op.create_index("idx_promo_codes_created_at", "promo_codes", ["created_at"])
    op.create_index("idx_promo_codes_deleted_at", "promo_codes", ["deleted_at"])

    op.create_table(
        "purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("promo_code_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("original_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("final_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("failure_reason", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('ACTIVE','FAILED')", name="ck_purchases_status"),
        sa.CheckConstraint("original_price >= 0", name="ck_purchases_original_price_non_negative"),
        sa.CheckConstraint("discount_amount >= 0", name="ck_purchases_discount_non_negative"),
        sa.CheckConstraint(
            "final_price = original_price - discount_amount",
            name="ck_purchases_final_price",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.UniqueConstraint("user_id", "course_id", name="uq_purchases_user_course"),
    )
    op.create_index("idx_purchases_user_created", "purchases", ["user_id", "created_at"])
    op.create_index("idx_purchases_course", "purchases", ["course_id"])
    op.create_index("idx_purchases_promo_code", "purchases", ["promo_code_id"])

    op.create_table(
        "balance_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("purchase_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("type IN ('DEPOSIT','PURCHASE')", name="ck_balance_transactions_type"),
        sa.CheckConstraint(
            "(type = 'DEPOSIT' AND amount > 0) OR (type = 'PURCHASE' AND amount <= 0)",
            name="ck_balance_transactions_amount_sign",
        ),
        sa.CheckConstraint(
            "balance_after IS NULL OR balance_after >= 0",
            name="ck_balance_transactions_balance_after_non_negative",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchases.id"]),
    )
    op.create_index(
        "idx_balance_transactions_user_created",
        "balance_transactions",
        ["user_id", "created_at"],
    )
    op.create_index("idx_balance_transactions_purchase", "balance_transactions", ["purchase_id"])

    op.create_table(
        "reconciliation_runs",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("users_checked", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("diff_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("status IN ('OK','DIFF')", name="ck_reconciliation_runs_status"),
    )


def downgrade() -> None:
    op.drop_table("reconciliation_runs")
    op.drop_index("idx_balance_transactions_purchase", table_name="balance_transactions")
    op.drop_index("idx_balance_transactions_user_created", table_name="balance_transactions")
    op.drop_table("balance_transactions")
    op.drop_index("idx_purchases_promo_code", table_name="purchases")
    op.drop_index("idx_purchases_course", table_name="purchases")
    op.drop_index("idx_purchases_user_created", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("idx_promo_codes_deleted_at", table_name="promo_codes")
    op.drop_index("idx_promo_codes_created_at", table_name="promo_codes")
    op.drop_index("idx_promo_codes_course", table_name="promo_codes")
    op.drop_table("promo_codes")
    op.drop_index("idx_courses_published", table_name="courses")
    op.drop_index("idx_courses_owner", table_name="courses")
    op.drop_table("courses")
    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
