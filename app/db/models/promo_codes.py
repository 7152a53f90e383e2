from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BOOLEAN,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint(
            "discount_type IN ('PERCENTAGE')",
            name="ck_promo_codes_discount_type",
        ),
        CheckConstraint(
            "discount_value = 100",
            name="ck_promo_codes_discount_value_full",
        ),
        CheckConstraint("code = UPPER(code)", name="ck_promo_codes_code_upper"),
        CheckConstraint("usage_limit >= 1", name="ck_promo_codes_usage_limit_positive"),
        CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count_non_negative"),
        CheckConstraint(
            "used_count <= usage_limit",
            name="ck_promo_codes_used_count_le_limit",
        ),
        UniqueConstraint("code", name="uq_promo_codes_code"),
        Index("idx_promo_codes_course", "course_id"),
        Index("idx_promo_codes_created_at", "created_at"),
        Index("idx_promo_codes_deleted_at", "deleted_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    course_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("courses.id"),
        nullable=False,
    )
    discount_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'PERCENTAGE'"),
    )
    discount_value: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        server_default=text("100"),
    )
    usage_limit: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
