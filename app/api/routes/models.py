from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LedgerModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PurchaseRequest(LedgerModel):
    course_id: UUID = Field(alias="courseId")
    promocode: str | None = Field(default=None, max_length=64)


class PurchaseResponse(LedgerModel):
    success: bool = True
    purchase_id: UUID = Field(alias="purchaseId")
    new_balance: str = Field(alias="newBalance")
    original_price: str = Field(alias="originalPrice")
    discount_amount: str = Field(alias="discountAmount")
    final_price: str = Field(alias="finalPrice")
    promocode: str | None = None


class PromoValidateRequest(LedgerModel):
    code: str = Field(max_length=64)
    course_id: UUID = Field(alias="courseId")


class PromoCodeSummary(LedgerModel):
    id: UUID
    code: str
    discount_type: str = Field(alias="discountType")
    discount_value: int = Field(alias="discountValue")


class PromoValidateResponse(LedgerModel):
    valid: bool = True
    promocode: PromoCodeSummary
    original_price: str = Field(alias="originalPrice")
    discount_amount: str = Field(alias="discountAmount")
    final_price: str = Field(alias="finalPrice")


class BalanceResponse(LedgerModel):
    balance: str


class BalanceTransactionItem(LedgerModel):
    id: int
    amount: str
    type: str
    description: str
    balance_after: str | None = Field(default=None, alias="balanceAfter")
    purchase_id: UUID | None = Field(default=None, alias="purchaseId")
    created_at: datetime = Field(alias="createdAt")


class BalanceTransactionsResponse(LedgerModel):
    transactions: list[BalanceTransactionItem]
    next_before_id: int | None = Field(default=None, alias="nextBeforeId")


class OwnedCourseItem(LedgerModel):
    purchase_id: UUID = Field(alias="purchaseId")
    course_id: UUID = Field(alias="courseId")
    title: str
    final_price: str = Field(alias="finalPrice")
    purchased_at: datetime = Field(alias="purchasedAt")


class OwnedCoursesResponse(LedgerModel):
    purchases: list[OwnedCourseItem]


class CourseAccessResponse(LedgerModel):
    has_access: bool = Field(alias="hasAccess")


class PromoCodeCreateRequest(LedgerModel):
    course_id: UUID = Field(alias="courseId")
    code: str | None = Field(default=None, max_length=64)
    description: str | None = Field(default=None, max_length=500)


class PromoCodeBulkCreateRequest(LedgerModel):
    course_id: UUID = Field(alias="courseId")
    quantity: int
    description: str | None = Field(default=None, max_length=500)


class PromoCodeUpdateRequest(LedgerModel):
    is_active: bool = Field(alias="isActive")


class PromoCodeResponse(LedgerModel):
    id: UUID
    code: str
    course_id: UUID = Field(alias="courseId")
    discount_type: str = Field(alias="discountType")
    discount_value: int = Field(alias="discountValue")
    usage_limit: int = Field(alias="usageLimit")
    used_count: int = Field(alias="usedCount")
    is_active: bool = Field(alias="isActive")
    description: str | None = None
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")
    created_at: datetime = Field(alias="createdAt")


class PromoCodeListResponse(LedgerModel):
    promocodes: list[PromoCodeResponse]


class PromoCodeBulkDeleteRequest(LedgerModel):
    course_id: UUID | Literal["ALL"] = Field(alias="courseId")


class PromoCodeBulkDeleteResponse(LedgerModel):
    success: bool = True
    count: int


class StudentCourseGrantRequest(LedgerModel):
    course_id: UUID = Field(alias="courseId")


class StudentCourseGrantResponse(LedgerModel):
    purchase_id: UUID = Field(alias="purchaseId")
    course_id: UUID = Field(alias="courseId")
    status: str


class StudentCourseRevokeResponse(LedgerModel):
    purchase_id: UUID = Field(alias="purchaseId")
    course_id: UUID = Field(alias="courseId")
    outcome: str
