from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class BalanceTransaction(Base):
    __tablename__ = "balance_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('DEPOSIT','PURCHASE')", name="ck_balance_transactions_type"),
        CheckConstraint(
            "(type = 'DEPOSIT' AND amount > 0) OR (type = 'PURCHASE' AND amount <= 0)",
            name="ck_balance_transactions_amount_sign",
        ),
        CheckConstraint(
            "balance_after IS NULL OR balance_after >= 0",
            name="ck_balance_transactions_balance_after_non_negative",
        ),
        Index("idx_balance_transactions_user_created", "user_id", "created_at"),
        Index("idx_balance_transactions_purchase", "purchase_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    purchase_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("purchases.id"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    balance_after: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


@event.listens_for(BalanceTransaction, "before_update")
def _reject_update(mapper, connection, target: BalanceTransaction) -> None:
    raise ValueError("balance_transactions is append-only")


@event.listens_for(BalanceTransaction, "before_delete")
def _reject_delete(mapper, connection, target: BalanceTransaction) -> None:
    raise ValueError("balance_transactions is append-only")
