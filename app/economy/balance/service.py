from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import ZERO, to_money
from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.balance.errors import (
    BalanceCourseNotFoundError,
    BalanceUserNotFoundError,
    LedgerInvariantError,
)
from app.economy.balance.types import BalanceSnapshot, OwnedCourse, TransactionPage

TRANSACTIONS_DEFAULT_LIMIT = 50
TRANSACTIONS_MAX_LIMIT = 200

logger = structlog.get_logger(__name__)


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return TRANSACTIONS_DEFAULT_LIMIT
    return max(1, min(TRANSACTIONS_MAX_LIMIT, int(limit)))


async def get_balance(session: AsyncSession, *, user_id: UUID) -> BalanceSnapshot:
    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise BalanceUserNotFoundError

    balance = to_money(user.balance)
    if balance < ZERO:
        logger.error("ledger_negative_balance_detected", user_id=str(user_id), balance=str(balance))
        raise LedgerInvariantError
    return BalanceSnapshot(user_id=user.id, balance=balance)


async def list_transactions(
    session: AsyncSession,
    *,
    user_id: UUID,
    limit: int | None = TRANSACTIONS_DEFAULT_LIMIT,
    before_id: int | None = None,
) -> TransactionPage:
    page_size = clamp_limit(limit)
    transactions = await LedgerRepo.list_for_user(
        session,
        user_id=user_id,
        limit=page_size,
        before_id=before_id,
    )
    next_before_id = transactions[-1].id if len(transactions) == page_size else None
    return TransactionPage(transactions=transactions, next_before_id=next_before_id)


async def list_purchases(session: AsyncSession, *, user_id: UUID) -> list[OwnedCourse]:
    rows = await PurchasesRepo.list_active_for_user(session, user_id=user_id)
    return [
        OwnedCourse(
            purchase_id=purchase.id,
            course_id=course.id,
            title=course.title,
            final_price=to_money(purchase.final_price),
            purchased_at=purchase.created_at,
        )
        for purchase, course in rows
    ]


async def has_course_access(session: AsyncSession, *, user_id: UUID, course_id: UUID) -> bool:
    course = await CoursesRepo.get_published_by_id(session, course_id)
    if course is None:
        raise BalanceCourseNotFoundError
    if to_money(course.price) == ZERO:
        return True

    purchase = await PurchasesRepo.get_for_user_course(
        session,
        user_id=user_id,
        course_id=course_id,
    )
    return purchase is not None and purchase.status == "ACTIVE"


class BalanceService:
    get_balance = staticmethod(get_balance)
    list_transactions = staticmethod(list_transactions)
    list_purchases = staticmethod(list_purchases)
    has_course_access = staticmethod(has_course_access)
