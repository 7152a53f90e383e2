from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.money import format_money
from app.db.session import SessionLocal
from app.economy.balance.errors import (
    BalanceCourseNotFoundError,
    BalanceUserNotFoundError,
    LedgerInvariantError,
)
from app.economy.balance.service import TRANSACTIONS_DEFAULT_LIMIT, BalanceService

from .errors import domain_error, store_error
from .identity import authenticate_caller
from .models import (
    BalanceResponse,
    BalanceTransactionItem,
    BalanceTransactionsResponse,
    CourseAccessResponse,
    OwnedCourseItem,
    OwnedCoursesResponse,
)

router = APIRouter(tags=["balance"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(request: Request) -> BalanceResponse:
    caller = authenticate_caller(request)

    try:
        async with SessionLocal() as session:
            snapshot = await BalanceService.get_balance(session, user_id=caller.user_id)
    except BalanceUserNotFoundError as exc:
        raise domain_error(exc, status_code=404) from exc
    except LedgerInvariantError as exc:
        raise domain_error(exc, status_code=500) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="balance_read_store_failure") from exc

    return BalanceResponse(balance=format_money(snapshot.balance))


@router.get("/balance/transactions", response_model=BalanceTransactionsResponse)
async def list_balance_transactions(
    request: Request,
    limit: int = Query(default=TRANSACTIONS_DEFAULT_LIMIT),
    before_id: int | None = Query(default=None, alias="beforeId"),
) -> BalanceTransactionsResponse:
    caller = authenticate_caller(request)

    try:
        async with SessionLocal() as session:
            page = await BalanceService.list_transactions(
                session,
                user_id=caller.user_id,
                limit=limit,
                before_id=before_id,
            )
    except SQLAlchemyError as exc:
        raise store_error(exc, event="balance_transactions_store_failure") from exc

    return BalanceTransactionsResponse(
        transactions=[
            BalanceTransactionItem(
                id=entry.id,
                amount=format_money(entry.amount),
                type=entry.type,
                description=entry.description,
                balance_after=(
                    format_money(entry.balance_after) if entry.balance_after is not None else None
                ),
                purchase_id=entry.purchase_id,
                created_at=entry.created_at,
            )
            for entry in page.transactions
        ],
        next_before_id=page.next_before_id,
    )


@router.get("/purchases", response_model=OwnedCoursesResponse)
async def list_purchases(request: Request) -> OwnedCoursesResponse:
    caller = authenticate_caller(request)

    try:
        async with SessionLocal() as session:
            owned = await BalanceService.list_purchases(session, user_id=caller.user_id)
    except SQLAlchemyError as exc:
        raise store_error(exc, event="purchases_list_store_failure") from exc

    return OwnedCoursesResponse(
        purchases=[
            OwnedCourseItem(
                purchase_id=item.purchase_id,
                course_id=item.course_id,
                title=item.title,
                final_price=format_money(item.final_price),
                purchased_at=item.purchased_at,
            )
            for item in owned
        ]
    )


@router.get("/courses/{course_id}/access", response_model=CourseAccessResponse)
async def get_course_access(course_id: UUID, request: Request) -> CourseAccessResponse:
    caller = authenticate_caller(request)

    try:
        async with SessionLocal() as session:
            has_access = await BalanceService.has_course_access(
                session,
                user_id=caller.user_id,
                course_id=course_id,
            )
    except BalanceCourseNotFoundError as exc:
        raise domain_error(exc, status_code=404) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="course_access_store_failure") from exc

    return CourseAccessResponse(has_access=has_access)
