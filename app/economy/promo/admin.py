from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.promo_codes import PromoCode
from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.promo_repo import PromoRepo
from app.economy.promo.codes import (
    MAX_CODE_LENGTH,
    generate_unique_codes,
    normalize_promo_code,
)
from app.economy.promo.errors import (
    PromoCodeGenerationError,
    PromoCourseNotFoundError,
    PromoInvalidCodeError,
    PromoInvalidQuantityError,
    PromoNotFoundError,
)

BULK_MIN_QUANTITY = 1
BULK_MAX_QUANTITY = 99
CODE_ALLOCATION_ROUNDS = 10

logger = structlog.get_logger(__name__)


async def _allocate_codes(session: AsyncSession, *, count: int) -> list[str]:
    allocated: list[str] = []
    for _ in range(CODE_ALLOCATION_ROUNDS):
        missing = count - len(allocated)
        if missing <= 0:
            break
        candidates = generate_unique_codes(count=missing, existing_codes=set(allocated))
        taken = await PromoRepo.list_existing_codes(session, candidates)
        allocated.extend(code for code in candidates if code not in taken)

    if len(allocated) < count:
        raise PromoCodeGenerationError
    return allocated


def _build_promo_code(
    *,
    code: str,
    course_id: UUID,
    created_by: UUID | None,
    description: str | None,
    now_utc: datetime,
) -> PromoCode:
    return PromoCode(
        id=uuid4(),
        code=code,
        course_id=course_id,
        discount_type="PERCENTAGE",
        discount_value=100,
        usage_limit=1,
        used_count=0,
        is_active=True,
        description=description,
        deleted_at=None,
        created_by=created_by,
        created_at=now_utc,
        updated_at=now_utc,
    )


async def _ensure_course_exists(session: AsyncSession, *, course_id: UUID) -> None:
    course = await CoursesRepo.get_by_id(session, course_id)
    if course is None:
        raise PromoCourseNotFoundError


async def create_code(
    session: AsyncSession,
    *,
    course_id: UUID,
    created_by: UUID | None,
    now_utc: datetime,
    code: str | None = None,
    description: str | None = None,
) -> PromoCode:
    normalized_code = normalize_promo_code(code) if code else ""
    if len(normalized_code) > MAX_CODE_LENGTH:
        raise PromoInvalidCodeError

    await _ensure_course_exists(session, course_id=course_id)

    # Soft-deleted codes keep their string reserved.
    if normalized_code and await PromoRepo.list_existing_codes(session, [normalized_code]):
        logger.info("promo_code_collision_regenerated", course_id=str(course_id))
        normalized_code = ""
    if not normalized_code:
        (normalized_code,) = await _allocate_codes(session, count=1)

    promo_code = await PromoRepo.create_code(
        session,
        promo_code=_build_promo_code(
            code=normalized_code,
            course_id=course_id,
            created_by=created_by,
            description=description,
            now_utc=now_utc,
        ),
    )
    logger.info(
        "promo_code_created",
        promo_code_id=str(promo_code.id),
        course_id=str(course_id),
        created_by=str(created_by) if created_by is not None else None,
    )
    return promo_code


async def create_codes_bulk(
    session: AsyncSession,
    *,
    course_id: UUID,
    quantity: int,
    created_by: UUID | None,
    now_utc: datetime,
    description: str | None = None,
) -> list[PromoCode]:
    if quantity < BULK_MIN_QUANTITY or quantity > BULK_MAX_QUANTITY:
        raise PromoInvalidQuantityError

    await _ensure_course_exists(session, course_id=course_id)
    codes = await _allocate_codes(session, count=quantity)
    promo_codes = await PromoRepo.create_codes(
        session,
        promo_codes=[
            _build_promo_code(
                code=code,
                course_id=course_id,
                created_by=created_by,
                description=description,
                now_utc=now_utc,
            )
            for code in codes
        ],
    )
    logger.info(
        "promo_codes_bulk_created",
        course_id=str(course_id),
        quantity=len(promo_codes),
    )
    return promo_codes


async def list_codes(
    session: AsyncSession,
    *,
    course_id: UUID | None = None,
    limit: int = 50,
) -> list[PromoCode]:
    return await PromoRepo.list_codes(session, course_id=course_id, limit=limit)


async def _get_live_code_for_update(session: AsyncSession, *, promo_code_id: UUID) -> PromoCode:
    promo_code = await PromoRepo.get_code_by_id_for_update(session, promo_code_id)
    if promo_code is None or promo_code.deleted_at is not None:
        raise PromoNotFoundError
    return promo_code


async def set_active(
    session: AsyncSession,
    *,
    promo_code_id: UUID,
    is_active: bool,
    now_utc: datetime,
) -> PromoCode:
    promo_code = await _get_live_code_for_update(session, promo_code_id=promo_code_id)
    promo_code.is_active = is_active
    promo_code.updated_at = now_utc
    await session.flush()
    logger.info(
        "promo_code_toggled",
        promo_code_id=str(promo_code_id),
        is_active=is_active,
    )
    return promo_code


async def soft_delete(
    session: AsyncSession,
    *,
    promo_code_id: UUID,
    now_utc: datetime,
) -> PromoCode:
    promo_code = await _get_live_code_for_update(session, promo_code_id=promo_code_id)
    promo_code.is_active = False
    promo_code.deleted_at = now_utc
    promo_code.updated_at = now_utc
    await session.flush()
    logger.info("promo_code_soft_deleted", promo_code_id=str(promo_code_id))
    return promo_code


async def soft_delete_codes_bulk(
    session: AsyncSession,
    *,
    course_id: UUID | None,
    now_utc: datetime,
) -> int:
    """Soft-delete every live code of a course, or of all courses when course_id is None."""
    if course_id is not None:
        await _ensure_course_exists(session, course_id=course_id)

    deleted_count = await PromoRepo.soft_delete_codes(session, course_id=course_id, now_utc=now_utc)
    logger.info(
        "promo_codes_bulk_soft_deleted",
        course_id=str(course_id) if course_id is not None else None,
        deleted_count=deleted_count,
    )
    return deleted_count


class PromoAdminService:
    create_code = staticmethod(create_code)
    create_codes_bulk = staticmethod(create_codes_bulk)
    list_codes = staticmethod(list_codes)
    set_active = staticmethod(set_active)
    soft_delete = staticmethod(soft_delete)
    soft_delete_codes_bulk = staticmethod(soft_delete_codes_bulk)
