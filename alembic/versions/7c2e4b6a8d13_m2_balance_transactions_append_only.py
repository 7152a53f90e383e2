"""m2_balance_transactions_append_only

Revision ID: 7c2e4b6a8d13
Revises: 3a1f5c7d9e21
Create Date: 2026-10-05 09:30:00.000000
"""

from collections.abc import Sequence

from alembic import op

revision: str = "7c2e4b6a8d13"
down_revision: str | None = "3a1f5c7d9e21"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION fn_balance_transactions_append_only()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            RAISE EXCEPTION 'balance_transactions is append-only';
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_balance_transactions_append_only
        BEFORE UPDATE OR DELETE ON balance_transactions
        FOR EACH ROW
        EXECUTE FUNCTION fn_balance_transactions_append_only();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_balance_transactions_append_only ON balance_transactions;")
    op.execute("DROP FUNCTION IF EXISTS fn_balance_transactions_append_only();")
