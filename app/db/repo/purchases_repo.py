from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.courses import Course
from app.db.models.purchases import Purchase


class PurchasesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, purchase_id: UUID) -> Purchase | None:
        return await session.get(Purchase, purchase_id)

    @staticmethod
    async def get_for_user_course(
        session: AsyncSession,
        *,
        user_id: UUID,
        course_id: UUID,
    ) -> Purchase | None:
        stmt = select(Purchase).where(
            Purchase.user_id == user_id,
            Purchase.course_id == course_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_for_user_course_for_update(
        session: AsyncSession,
        *,
        user_id: UUID,
        course_id: UUID,
    ) -> Purchase | None:
        stmt = (
            select(Purchase)
            .where(
                Purchase.user_id == user_id,
                Purchase.course_id == course_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_active_for_user(
        session: AsyncSession,
        *,
        user_id: UUID,
    ) -> list[tuple[Purchase, Course]]:
        stmt = (
            select(Purchase, Course)
            .join(Course, Course.id == Purchase.course_id)
            .where(Purchase.user_id == user_id, Purchase.status == "ACTIVE")
            .order_by(Purchase.created_at.desc(), Purchase.id.desc())
        )
        result = await session.execute(stmt)
        return [(purchase, course) for purchase, course in result.all()]

    @staticmethod
    async def create(session: AsyncSession, *, purchase: Purchase) -> Purchase:
        session.add(purchase)
        await session.flush()
        return purchase

    @staticmethod
    async def delete(session: AsyncSession, *, purchase: Purchase) -> None:
        await session.delete(purchase)
        await session.flush()

    @staticmethod
    async def try_create_failed_slot(
        session: AsyncSession,
        *,
        user_id: UUID,
        course_id: UUID,
        original_price: Decimal,
        failure_reason: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            postgresql_insert(Purchase)
            .values(
                id=uuid4(),
                user_id=user_id,
                course_id=course_id,
                status="FAILED",
                promo_code_id=None,
                original_price=original_price,
                discount_amount=Decimal("0.00"),
                final_price=original_price,
                failure_reason=failure_reason,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(constraint="uq_purchases_user_course")
            .returning(Purchase.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
