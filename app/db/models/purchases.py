from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE','FAILED','REVOKED')", name="ck_purchases_status"),
        CheckConstraint("original_price >= 0", name="ck_purchases_original_price_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_purchases_discount_non_negative"),
        CheckConstraint(
            "final_price = original_price - discount_amount",
            name="ck_purchases_final_price",
        ),
        UniqueConstraint("user_id", "course_id", name="uq_purchases_user_course"),
        Index("idx_purchases_user_created", "user_id", "created_at"),
        Index("idx_purchases_course", "course_id"),
        Index("idx_purchases_promo_code", "promo_code_id"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    course_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("courses.id"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    promo_code_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("promo_codes.id"),
        nullable=True,
    )
    original_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    final_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
