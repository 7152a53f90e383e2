"""m3_purchases_revoked_status

Revision ID: 9d4f2a6c1b58
Revises: 7c2e4b6a8d13
Create Date: 2026-10-19 10:00:00.000000
"""

from collections.abc import Sequence

from alembic import op

revision: str = "9d4f2a6c1b58"
down_revision: str | None = "7c2e4b6a8d13"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.drop_constraint("ck_purchases_status", "purchases", type_="check")
    op.create_check_constraint(
        "ck_purchases_status",
        "purchases",
        "status IN ('ACTIVE','FAILED','REVOKED')",
    )


def downgrade() -> None:
    op.drop_constraint("ck_purchases_status", "purchases", type_="check")
    op.create_check_constraint(
        "ck_purchases_status",
        "purchases",
        "status IN ('ACTIVE','FAILED')",
    )
