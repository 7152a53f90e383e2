from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.db.models.balance_transactions import BalanceTransaction


@dataclass(slots=True)
class BalanceSnapshot:
    user_id: UUID
    balance: Decimal


@dataclass(slots=True)
class TransactionPage:
    transactions: list[BalanceTransaction]
    next_before_id: int | None


@dataclass(slots=True)
class OwnedCourse:
    purchase_id: UUID
    course_id: UUID
    title: str
    final_price: Decimal
    purchased_at: datetime
