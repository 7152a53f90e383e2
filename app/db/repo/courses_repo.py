from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.courses import Course


class CoursesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, course_id: UUID) -> Course | None:
        return await session.get(Course, course_id)

    @staticmethod
    async def get_published_by_id(session: AsyncSession, course_id: UUID) -> Course | None:
        stmt = select(Course).where(Course.id == course_id, Course.is_published.is_(True))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        title: str,
        price: Decimal | None,
        is_published: bool,
        now_utc: datetime,
        owner_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> Course:
        course = Course(
            id=course_id or uuid4(),
            owner_id=owner_id,
            title=title,
            price=price,
            is_published=is_published,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(course)
        await session.flush()
        return course
