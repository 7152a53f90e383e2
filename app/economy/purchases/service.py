from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import ZERO, to_money
from app.db.models.balance_transactions import BalanceTransaction
from app.db.models.courses import Course
from app.db.models.purchases import Purchase
from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.db.schema_guard import as_not_initialized, is_schema_drift_error
from app.db.session import SessionLocal
from app.economy.promo.errors import PromoError
from app.economy.promo.validation import ensure_promo_applicable, validate_promo_code
from app.economy.purchases.errors import (
    AlreadyPurchasedError,
    CourseNotAvailableError,
    InsufficientBalanceError,
    PurchaseError,
    PurchaseStoreError,
    PurchaseUserNotFoundError,
)
from app.economy.purchases.types import PricedPurchase, PurchaseReceipt

PURCHASE_UNIQUE_CONSTRAINT = "uq_purchases_user_course"
FAILURE_REASON_MAX_LENGTH = 64

logger = structlog.get_logger(__name__)


def is_purchase_slot_conflict(exc: IntegrityError) -> bool:
    constraint_name = getattr(getattr(exc.orig, "__cause__", None), "constraint_name", None)
    if constraint_name is not None:
        return constraint_name == PURCHASE_UNIQUE_CONSTRAINT
    return PURCHASE_UNIQUE_CONSTRAINT in str(exc.orig)


def build_description(*, course_title: str, promo_code: str | None) -> str:
    if promo_code:
        return f"Course purchase: {course_title} (promo code: {promo_code})"
    return f"Course purchase: {course_title}"


async def _price_purchase(
    session: AsyncSession,
    *,
    course: Course,
    promo_code: str | None,
) -> PricedPurchase:
    original_price = to_money(course.price)
    if promo_code is None:
        return PricedPurchase(
            original_price=original_price,
            discount_amount=ZERO,
            final_price=original_price,
        )

    validation = await validate_promo_code(session, code=promo_code, course_id=course.id)
    return PricedPurchase(
        original_price=original_price,
        discount_amount=original_price,
        final_price=ZERO,
        promo_code_id=validation.promo_code_id,
        promo_code=validation.code,
    )


def _build_purchase(
    *,
    user_id: UUID,
    course_id: UUID,
    priced: PricedPurchase,
    now_utc: datetime,
) -> Purchase:
    return Purchase(
        id=uuid4(),
        user_id=user_id,
        course_id=course_id,
        status="ACTIVE",
        promo_code_id=priced.promo_code_id,
        original_price=priced.original_price,
        discount_amount=priced.discount_amount,
        final_price=priced.final_price,
        failure_reason=None,
        created_at=now_utc,
        updated_at=now_utc,
    )


def _reactivate_purchase(
    purchase: Purchase,
    *,
    priced: PricedPurchase,
    now_utc: datetime,
) -> Purchase:
    purchase.status = "ACTIVE"
    purchase.promo_code_id = priced.promo_code_id
    purchase.original_price = priced.original_price
    purchase.discount_amount = priced.discount_amount
    purchase.final_price = priced.final_price
    purchase.failure_reason = None
    purchase.created_at = now_utc
    purchase.updated_at = now_utc
    return purchase


async def claim_purchase_slot(
    session: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    priced: PricedPurchase,
    now_utc: datetime,
) -> tuple[Purchase, str | None]:
    """Lock the (user, course) slot and turn it into an ACTIVE purchase.

    A FAILED slot is deleted and replaced. A REVOKED slot may be referenced by
    balance transactions, so it is reactivated in place instead. Returns the
    purchase and the status the slot had before, if any.
    """
    slot = await PurchasesRepo.get_for_user_course_for_update(
        session,
        user_id=user_id,
        course_id=course_id,
    )
    previous_status = slot.status if slot is not None else None
    if previous_status == "ACTIVE":
        raise AlreadyPurchasedError
    if previous_status == "REVOKED":
        purchase = _reactivate_purchase(slot, priced=priced, now_utc=now_utc)
        await session.flush()
        return purchase, previous_status
    if slot is not None:
        await PurchasesRepo.delete(session, purchase=slot)

    try:
        purchase = await PurchasesRepo.create(
            session,
            purchase=_build_purchase(
                user_id=user_id,
                course_id=course_id,
                priced=priced,
                now_utc=now_utc,
            ),
        )
    except IntegrityError as exc:
        if is_purchase_slot_conflict(exc):
            raise AlreadyPurchasedError from exc
        raise
    return purchase, previous_status


async def purchase_course(
    session: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    now_utc: datetime,
    promo_code: str | None = None,
) -> PurchaseReceipt:
    course = await CoursesRepo.get_published_by_id(session, course_id)
    if course is None:
        raise CourseNotAvailableError

    existing = await PurchasesRepo.get_for_user_course(
        session,
        user_id=user_id,
        course_id=course_id,
    )
    if existing is not None and existing.status == "ACTIVE":
        raise AlreadyPurchasedError

    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise PurchaseUserNotFoundError

    # An empty string means no code; anything else goes through validation.
    priced = await _price_purchase(session, course=course, promo_code=promo_code or None)
    if to_money(user.balance) < priced.final_price:
        raise InsufficientBalanceError

    # Lock order: user, promo code, purchase slot.
    locked_user = await UsersRepo.get_by_id_for_update(session, user_id)
    if locked_user is None:
        raise PurchaseUserNotFoundError
    if to_money(locked_user.balance) < priced.final_price:
        raise InsufficientBalanceError

    locked_promo = None
    if priced.promo_code_id is not None:
        locked_promo = ensure_promo_applicable(
            await PromoRepo.get_code_by_id_for_update(session, priced.promo_code_id),
            course_id=course_id,
        )

    purchase, previous_status = await claim_purchase_slot(
        session,
        user_id=user_id,
        course_id=course_id,
        priced=priced,
        now_utc=now_utc,
    )

    new_balance = to_money(locked_user.balance) - priced.final_price
    locked_user.balance = new_balance
    locked_user.updated_at = now_utc

    entry = await LedgerRepo.create(
        session,
        entry=BalanceTransaction(
            user_id=user_id,
            purchase_id=purchase.id,
            amount=ZERO - priced.final_price,
            type="PURCHASE",
            description=build_description(
                course_title=course.title,
                promo_code=priced.promo_code,
            ),
            balance_after=new_balance,
            created_at=now_utc,
        ),
    )

    if locked_promo is not None:
        locked_promo.used_count += 1
        locked_promo.updated_at = now_utc
    await session.flush()

    logger.info(
        "purchase_completed",
        purchase_id=str(purchase.id),
        user_id=str(user_id),
        course_id=str(course_id),
        final_price=str(priced.final_price),
        promo_code_id=str(priced.promo_code_id) if priced.promo_code_id else None,
        previous_slot_status=previous_status,
    )
    return PurchaseReceipt(
        purchase_id=purchase.id,
        course_id=course_id,
        new_balance=new_balance,
        original_price=priced.original_price,
        discount_amount=priced.discount_amount,
        final_price=priced.final_price,
        promo_code=priced.promo_code,
        balance_transaction_id=entry.id,
    )


async def record_failed_purchase(
    *,
    user_id: UUID,
    course_id: UUID,
    failure_reason: str,
    now_utc: datetime,
) -> bool:
    try:
        async with SessionLocal.begin() as failure_session:
            course = await CoursesRepo.get_by_id(failure_session, course_id)
            user = await UsersRepo.get_by_id(failure_session, user_id)
            if course is None or user is None:
                return False
            recorded = await PurchasesRepo.try_create_failed_slot(
                failure_session,
                user_id=user_id,
                course_id=course_id,
                original_price=to_money(course.price),
                failure_reason=failure_reason[:FAILURE_REASON_MAX_LENGTH],
                now_utc=now_utc,
            )
    except SQLAlchemyError:
        logger.exception(
            "purchase_failure_record_failed",
            user_id=str(user_id),
            course_id=str(course_id),
        )
        return False

    if recorded:
        logger.warning(
            "purchase_failed_slot_recorded",
            user_id=str(user_id),
            course_id=str(course_id),
            failure_reason=failure_reason,
        )
    return recorded


async def checkout(
    *,
    user_id: UUID,
    course_id: UUID,
    now_utc: datetime,
    promo_code: str | None = None,
) -> PurchaseReceipt:
    try:
        async with SessionLocal.begin() as session:
            return await purchase_course(
                session,
                user_id=user_id,
                course_id=course_id,
                promo_code=promo_code,
                now_utc=now_utc,
            )
    except (PurchaseError, PromoError) as exc:
        logger.info(
            "purchase_rejected",
            user_id=str(user_id),
            course_id=str(course_id),
            code=exc.code,
        )
        raise
    except SQLAlchemyError as exc:
        if is_schema_drift_error(exc):
            raise as_not_initialized(exc) from exc
        logger.exception(
            "purchase_store_failure",
            user_id=str(user_id),
            course_id=str(course_id),
        )
        await record_failed_purchase(
            user_id=user_id,
            course_id=course_id,
            failure_reason=type(exc).__name__,
            now_utc=now_utc,
        )
        raise PurchaseStoreError from exc


class PurchaseService:
    build_description = staticmethod(build_description)
    claim_purchase_slot = staticmethod(claim_purchase_slot)
    purchase_course = staticmethod(purchase_course)
    record_failed_purchase = staticmethod(record_failed_purchase)
    checkout = staticmethod(checkout)

