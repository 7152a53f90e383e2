from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(slots=True)
class PurchaseReceipt:
    purchase_id: UUID
    course_id: UUID
    new_balance: Decimal
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    promo_code: str | None
    balance_transaction_id: int


@dataclass(slots=True)
class PricedPurchase:
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    promo_code_id: UUID | None = None
    promo_code: str | None = None


@dataclass(slots=True)
class CourseRevocation:
    purchase_id: UUID
    course_id: UUID
    outcome: str
