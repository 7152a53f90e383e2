from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: UUID) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: UUID) -> User | None:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        email: str,
        full_name: str | None,
        role: str = "USER",
        balance: Decimal = Decimal("0.00"),
        now_utc: datetime,
        user_id: UUID | None = None,
    ) -> User:
        user = User(
            id=user_id or uuid4(),
            email=email.strip().lower(),
            full_name=full_name,
            role=role,
            balance=balance,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(user)
        await session.flush()
        return user
