from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import ZERO, to_money
from app.db.models.purchases import Purchase
from app.db.models.users import User
from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.balance.service import list_purchases
from app.economy.balance.types import OwnedCourse
from app.economy.purchases.errors import (
    CourseNotAvailableError,
    PurchaseNotFoundError,
    StudentNotFoundError,
)
from app.economy.purchases.service import claim_purchase_slot
from app.economy.purchases.types import CourseRevocation, PricedPurchase

STUDENT_ROLE = "USER"

logger = structlog.get_logger(__name__)


def _ensure_student(user: User | None) -> User:
    if user is None or user.role != STUDENT_ROLE:
        raise StudentNotFoundError
    return user


async def grant_course(
    session: AsyncSession,
    *,
    student_id: UUID,
    course_id: UUID,
    granted_by: UUID,
    now_utc: datetime,
) -> Purchase:
    # Lock order matches checkout: user, then purchase slot.
    _ensure_student(await UsersRepo.get_by_id_for_update(session, student_id))

    course = await CoursesRepo.get_published_by_id(session, course_id)
    if course is None:
        raise CourseNotAvailableError

    original_price = to_money(course.price)
    purchase, previous_status = await claim_purchase_slot(
        session,
        user_id=student_id,
        course_id=course_id,
        priced=PricedPurchase(
            original_price=original_price,
            discount_amount=original_price,
            final_price=ZERO,
        ),
        now_utc=now_utc,
    )
    logger.info(
        "course_granted",
        purchase_id=str(purchase.id),
        student_id=str(student_id),
        course_id=str(course_id),
        granted_by=str(granted_by),
        previous_slot_status=previous_status,
    )
    return purchase


async def revoke_course(
    session: AsyncSession,
    *,
    student_id: UUID,
    course_id: UUID,
    revoked_by: UUID,
    now_utc: datetime,
) -> CourseRevocation:
    """Free the (student, course) slot.

    Rows referenced by balance transactions stay as REVOKED so the ledger keeps
    its history; anything else is deleted.
    """
    _ensure_student(await UsersRepo.get_by_id_for_update(session, student_id))

    slot = await PurchasesRepo.get_for_user_course_for_update(
        session,
        user_id=student_id,
        course_id=course_id,
    )
    if slot is None or slot.status == "REVOKED":
        raise PurchaseNotFoundError

    if await LedgerRepo.has_entries_for_purchase(session, purchase_id=slot.id):
        slot.status = "REVOKED"
        slot.updated_at = now_utc
        await session.flush()
        outcome = "REVOKED"
    else:
        await PurchasesRepo.delete(session, purchase=slot)
        outcome = "DELETED"

    logger.info(
        "course_revoked",
        purchase_id=str(slot.id),
        student_id=str(student_id),
        course_id=str(course_id),
        revoked_by=str(revoked_by),
        outcome=outcome,
    )
    return CourseRevocation(purchase_id=slot.id, course_id=course_id, outcome=outcome)


async def list_student_courses(session: AsyncSession, *, student_id: UUID) -> list[OwnedCourse]:
    _ensure_student(await UsersRepo.get_by_id(session, student_id))
    return await list_purchases(session, user_id=student_id)


class EntitlementAdminService:
    grant_course = staticmethod(grant_course)
    revoke_course = staticmethod(revoke_course)
    list_student_courses = staticmethod(list_student_courses)
