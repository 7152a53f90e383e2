from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.balance_transactions import BalanceTransaction
from app.db.models.users import User


class LedgerRepo:
    @staticmethod
    async def create(
        session: AsyncSession, *, entry: BalanceTransaction
    ) -> BalanceTransaction:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int,
        before_id: int | None = None,
    ) -> list[BalanceTransaction]:
        stmt = (
            select(BalanceTransaction)
            .where(BalanceTransaction.user_id == user_id)
            .order_by(BalanceTransaction.created_at.desc(), BalanceTransaction.id.desc())
            .limit(limit)
        )
        if before_id is not None:
            cursor_created_at = await session.scalar(
                select(BalanceTransaction.created_at).where(
                    BalanceTransaction.id == before_id,
                    BalanceTransaction.user_id == user_id,
                )
            )
            if cursor_created_at is None:
                return []
            stmt = stmt.where(
                tuple_(BalanceTransaction.created_at, BalanceTransaction.id)
                < tuple_(cursor_created_at, before_id)
            )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_purchase(
        session: AsyncSession,
        *,
        purchase_id: UUID,
    ) -> list[BalanceTransaction]:
        stmt = (
            select(BalanceTransaction)
            .where(BalanceTransaction.purchase_id == purchase_id)
            .order_by(BalanceTransaction.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def has_entries_for_purchase(session: AsyncSession, *, purchase_id: UUID) -> bool:
        stmt = (
            select(BalanceTransaction.id)
            .where(BalanceTransaction.purchase_id == purchase_id)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def sum_for_user(session: AsyncSession, *, user_id: UUID) -> Decimal:
        stmt = select(func.coalesce(func.sum(BalanceTransaction.amount), 0)).where(
            BalanceTransaction.user_id == user_id
        )
        result = await session.execute(stmt)
        return Decimal(result.scalar_one() or 0)

    @staticmethod
    async def list_balance_totals(
        session: AsyncSession,
    ) -> list[tuple[UUID, Decimal, Decimal]]:
        ledger_totals = (
            select(
                BalanceTransaction.user_id.label("user_id"),
                func.sum(BalanceTransaction.amount).label("ledger_total"),
            )
            .group_by(BalanceTransaction.user_id)
            .subquery()
        )
        stmt = (
            select(
                User.id,
                User.balance,
                func.coalesce(ledger_totals.c.ledger_total, 0),
            )
            .outerjoin(ledger_totals, ledger_totals.c.user_id == User.id)
            .order_by(User.id.asc())
        )
        result = await session.execute(stmt)
        return [
            (user_id, Decimal(balance), Decimal(ledger_total))
            for user_id, balance, ledger_total in result.all()
        ]
