from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(slots=True)
class PromoValidationResult:
    promo_code_id: UUID
    code: str
    course_id: UUID
    discount_type: str
    discount_value: int
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
