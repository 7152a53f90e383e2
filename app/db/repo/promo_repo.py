from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.promo_codes import PromoCode


class PromoRepo:
    @staticmethod
    async def get_code_by_code(session: AsyncSession, code: str) -> PromoCode | None:
        stmt = select(PromoCode).where(PromoCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_code_by_id_for_update(
        session: AsyncSession, promo_code_id: UUID
    ) -> PromoCode | None:
        stmt = (
            select(PromoCode)
            .where(PromoCode.id == promo_code_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_existing_codes(session: AsyncSession, codes: Iterable[str]) -> set[str]:
        values = tuple(codes)
        if not values:
            return set()
        stmt = select(PromoCode.code).where(PromoCode.code.in_(values))
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def list_codes(
        session: AsyncSession,
        *,
        course_id: UUID | None = None,
        limit: int = 50,
    ) -> list[PromoCode]:
        stmt = (
            select(PromoCode)
            .where(PromoCode.deleted_at.is_(None))
            .order_by(PromoCode.created_at.desc(), PromoCode.id.desc())
            .limit(limit)
        )
        if course_id is not None:
            stmt = stmt.where(PromoCode.course_id == course_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_code(session: AsyncSession, *, promo_code: PromoCode) -> PromoCode:
        session.add(promo_code)
        await session.flush()
        return promo_code

    @staticmethod
    async def create_codes(
        session: AsyncSession, *, promo_codes: list[PromoCode]
    ) -> list[PromoCode]:
        session.add_all(promo_codes)
        await session.flush()
        return promo_codes

    @staticmethod
    async def soft_delete_codes(
        session: AsyncSession,
        *,
        course_id: UUID | None,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(PromoCode)
            .where(PromoCode.deleted_at.is_(None))
            .values(is_active=False, deleted_at=now_utc, updated_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        if course_id is not None:
            stmt = stmt.where(PromoCode.course_id == course_id)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
