from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import ZERO, to_money
from app.db.models.promo_codes import PromoCode
from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.promo_repo import PromoRepo
from app.economy.promo.codes import normalize_promo_code
from app.economy.promo.errors import (
    PromoAlreadyUsedError,
    PromoCourseNotFoundError,
    PromoInactiveError,
    PromoInvalidCodeError,
    PromoWrongCourseError,
)
from app.economy.promo.types import PromoValidationResult

logger = structlog.get_logger(__name__)


def ensure_promo_applicable(promo_code: PromoCode | None, *, course_id: UUID) -> PromoCode:
    if promo_code is None:
        raise PromoInvalidCodeError
    if not promo_code.is_active or promo_code.deleted_at is not None:
        raise PromoInactiveError
    if promo_code.course_id != course_id:
        raise PromoWrongCourseError
    if promo_code.used_count >= promo_code.usage_limit:
        raise PromoAlreadyUsedError
    return promo_code


async def validate_promo_code(
    session: AsyncSession,
    *,
    code: str,
    course_id: UUID,
) -> PromoValidationResult:
    normalized_code = normalize_promo_code(code)
    if not normalized_code:
        raise PromoInvalidCodeError

    promo_code = ensure_promo_applicable(
        await PromoRepo.get_code_by_code(session, normalized_code),
        course_id=course_id,
    )

    course = await CoursesRepo.get_by_id(session, course_id)
    if course is None:
        raise PromoCourseNotFoundError

    original_price = to_money(course.price)
    logger.debug(
        "promo_code_validated",
        promo_code_id=str(promo_code.id),
        course_id=str(course_id),
    )
    return PromoValidationResult(
        promo_code_id=promo_code.id,
        code=promo_code.code,
        course_id=promo_code.course_id,
        discount_type=promo_code.discount_type,
        discount_value=int(promo_code.discount_value),
        original_price=original_price,
        discount_amount=original_price,
        final_price=ZERO,
    )


class PromoService:
    ensure_promo_applicable = staticmethod(ensure_promo_applicable)
    validate_promo_code = staticmethod(validate_promo_code)
