from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.money import format_money
from app.db.models.promo_codes import PromoCode
from app.db.session import SessionLocal
from app.economy.promo.admin import PromoAdminService
from app.economy.promo.errors import (
    PromoCodeGenerationError,
    PromoCourseNotFoundError,
    PromoError,
    PromoInvalidCodeError,
    PromoNotFoundError,
)
from app.economy.promo.validation import PromoService

from .errors import domain_error, store_error
from .identity import authenticate_caller, authenticate_staff
from .models import (
    PromoCodeBulkCreateRequest,
    PromoCodeBulkDeleteRequest,
    PromoCodeBulkDeleteResponse,
    PromoCodeCreateRequest,
    PromoCodeListResponse,
    PromoCodeResponse,
    PromoCodeSummary,
    PromoCodeUpdateRequest,
    PromoValidateRequest,
    PromoValidateResponse,
)

router = APIRouter(tags=["promocodes"])


def _as_response(promo_code: PromoCode) -> PromoCodeResponse:
    return PromoCodeResponse(
        id=promo_code.id,
        code=promo_code.code,
        course_id=promo_code.course_id,
        discount_type=promo_code.discount_type,
        discount_value=int(promo_code.discount_value),
        usage_limit=int(promo_code.usage_limit),
        used_count=int(promo_code.used_count),
        is_active=bool(promo_code.is_active),
        description=promo_code.description,
        deleted_at=promo_code.deleted_at,
        created_at=promo_code.created_at,
    )


def _admin_error(exc: PromoError) -> HTTPException:
    if isinstance(exc, (PromoCourseNotFoundError, PromoNotFoundError)):
        return domain_error(exc, status_code=404)
    if isinstance(exc, PromoCodeGenerationError):
        return domain_error(exc, status_code=409)
    return domain_error(exc, status_code=400)


@router.post("/promocode/validate", response_model=PromoValidateResponse)
async def validate_promocode(
    payload: PromoValidateRequest,
    request: Request,
) -> PromoValidateResponse:
    caller = authenticate_caller(request)

    try:
        async with SessionLocal() as session:
            result = await PromoService.validate_promo_code(
                session,
                code=payload.code,
                course_id=payload.course_id,
            )
    except (PromoInvalidCodeError, PromoCourseNotFoundError) as exc:
        raise domain_error(exc, status_code=404) from exc
    except PromoError as exc:
        raise domain_error(exc, status_code=400) from exc
    except SQLAlchemyError as exc:
        raise store_error(
            exc,
            event="promo_validation_store_failure",
            user_id=str(caller.user_id),
        ) from exc

    return PromoValidateResponse(
        promocode=PromoCodeSummary(
            id=result.promo_code_id,
            code=result.code,
            discount_type=result.discount_type,
            discount_value=result.discount_value,
        ),
        original_price=format_money(result.original_price),
        discount_amount=format_money(result.discount_amount),
        final_price=format_money(result.final_price),
    )


@router.get("/promocodes", response_model=PromoCodeListResponse)
async def list_promocodes(
    request: Request,
    course_id: UUID | None = Query(default=None, alias="courseId"),
    limit: int = Query(default=50, ge=1, le=200),
) -> PromoCodeListResponse:
    authenticate_staff(request)

    try:
        async with SessionLocal() as session:
            promo_codes = await PromoAdminService.list_codes(
                session,
                course_id=course_id,
                limit=limit,
            )
    except SQLAlchemyError as exc:
        raise store_error(exc, event="promo_codes_list_store_failure") from exc

    return PromoCodeListResponse(promocodes=[_as_response(code) for code in promo_codes])


@router.post("/promocodes", response_model=PromoCodeResponse)
async def create_promocode(
    payload: PromoCodeCreateRequest,
    request: Request,
) -> PromoCodeResponse:
    caller = authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            promo_code = await PromoAdminService.create_code(
                session,
                course_id=payload.course_id,
                code=payload.code,
                description=payload.description,
                created_by=caller.user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except PromoError as exc:
        raise _admin_error(exc) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="promo_code_create_store_failure") from exc

    return _as_response(promo_code)


@router.post("/promocodes/bulk", response_model=PromoCodeListResponse)
async def create_promocodes_bulk(
    payload: PromoCodeBulkCreateRequest,
    request: Request,
) -> PromoCodeListResponse:
    caller = authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            promo_codes = await PromoAdminService.create_codes_bulk(
                session,
                course_id=payload.course_id,
                quantity=payload.quantity,
                description=payload.description,
                created_by=caller.user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except PromoError as exc:
        raise _admin_error(exc) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="promo_codes_bulk_store_failure") from exc

    return PromoCodeListResponse(promocodes=[_as_response(code) for code in promo_codes])


@router.patch("/promocodes/{promo_code_id}", response_model=PromoCodeResponse)
async def update_promocode(
    promo_code_id: UUID,
    payload: PromoCodeUpdateRequest,
    request: Request,
) -> PromoCodeResponse:
    authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            promo_code = await PromoAdminService.set_active(
                session,
                promo_code_id=promo_code_id,
                is_active=payload.is_active,
                now_utc=datetime.now(timezone.utc),
            )
    except PromoError as exc:
        raise _admin_error(exc) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="promo_code_update_store_failure") from exc

    return _as_response(promo_code)


@router.delete("/promocodes/{promo_code_id}", response_model=PromoCodeResponse)
async def delete_promocode(promo_code_id: UUID, request: Request) -> PromoCodeResponse:
    authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            promo_code = await PromoAdminService.soft_delete(
                session,
                promo_code_id=promo_code_id,
                now_utc=datetime.now(timezone.utc),
            )
    except PromoError as exc:
        raise _admin_error(exc) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="promo_code_delete_store_failure") from exc

    return _as_response(promo_code)


@router.post("/promocodes/bulk-delete", response_model=PromoCodeBulkDeleteResponse)
async def delete_promocodes_bulk(
    payload: PromoCodeBulkDeleteRequest,
    request: Request,
) -> PromoCodeBulkDeleteResponse:
    caller = authenticate_staff(request)
    course_id = None if payload.course_id == "ALL" else payload.course_id

    try:
        async with SessionLocal.begin() as session:
            deleted_count = await PromoAdminService.soft_delete_codes_bulk(
                session,
                course_id=course_id,
                now_utc=datetime.now(timezone.utc),
            )
    except PromoError as exc:
        raise _admin_error(exc) from exc
    except SQLAlchemyError as exc:
        raise store_error(
            exc,
            event="promo_codes_bulk_delete_store_failure",
            user_id=str(caller.user_id),
        ) from exc

    return PromoCodeBulkDeleteResponse(count=deleted_count)
