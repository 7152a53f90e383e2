from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request

from app.core.money import format_money
from app.db.schema_guard import LedgerNotInitializedError
from app.economy.promo.errors import PromoError
from app.economy.purchases.errors import (
    AlreadyPurchasedError,
    CourseNotAvailableError,
    InsufficientBalanceError,
    PurchaseStoreError,
    PurchaseUserNotFoundError,
)
from app.economy.purchases.service import PurchaseService

from .errors import domain_error, not_initialized_error
from .identity import authenticate_caller
from .models import PurchaseRequest, PurchaseResponse

router = APIRouter(tags=["purchases"])
logger = structlog.get_logger(__name__)


@router.post("/purchase", response_model=PurchaseResponse)
async def purchase_course(payload: PurchaseRequest, request: Request) -> PurchaseResponse:
    caller = authenticate_caller(request)

    try:
        receipt = await PurchaseService.checkout(
            user_id=caller.user_id,
            course_id=payload.course_id,
            promo_code=payload.promocode,
            now_utc=datetime.now(timezone.utc),
        )
    except (CourseNotAvailableError, PurchaseUserNotFoundError) as exc:
        raise domain_error(exc, status_code=404) from exc
    except (AlreadyPurchasedError, InsufficientBalanceError, PromoError) as exc:
        raise domain_error(exc, status_code=400) from exc
    except PurchaseStoreError as exc:
        raise HTTPException(status_code=500, detail={"code": "E_STORE_FAILURE"}) from exc
    except LedgerNotInitializedError as exc:
        raise not_initialized_error(exc) from exc

    return PurchaseResponse(
        purchase_id=receipt.purchase_id,
        new_balance=format_money(receipt.new_balance),
        original_price=format_money(receipt.original_price),
        discount_amount=format_money(receipt.discount_amount),
        final_price=format_money(receipt.final_price),
        promocode=receipt.promo_code,
    )
