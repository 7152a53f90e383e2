from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.money import format_money
from app.db.session import SessionLocal
from app.economy.purchases.errors import (
    AlreadyPurchasedError,
    CourseNotAvailableError,
    PurchaseNotFoundError,
    StudentNotFoundError,
)
from app.economy.purchases.grants import EntitlementAdminService

from .errors import domain_error, store_error
from .identity import authenticate_staff
from .models import (
    OwnedCourseItem,
    OwnedCoursesResponse,
    StudentCourseGrantRequest,
    StudentCourseGrantResponse,
    StudentCourseRevokeResponse,
)

router = APIRouter(tags=["students"])


@router.get("/students/{student_id}/courses", response_model=OwnedCoursesResponse)
async def list_student_courses(student_id: UUID, request: Request) -> OwnedCoursesResponse:
    authenticate_staff(request)

    try:
        async with SessionLocal() as session:
            owned = await EntitlementAdminService.list_student_courses(
                session,
                student_id=student_id,
            )
    except StudentNotFoundError as exc:
        raise domain_error(exc, status_code=404) from exc
    except SQLAlchemyError as exc:
        raise store_error(exc, event="student_courses_store_failure") from exc

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


@router.post("/students/{student_id}/courses", response_model=StudentCourseGrantResponse)
async def grant_student_course(
    student_id: UUID,
    payload: StudentCourseGrantRequest,
    request: Request,
) -> StudentCourseGrantResponse:
    caller = authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            purchase = await EntitlementAdminService.grant_course(
                session,
                student_id=student_id,
                course_id=payload.course_id,
                granted_by=caller.user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except (StudentNotFoundError, CourseNotAvailableError) as exc:
        raise domain_error(exc, status_code=404) from exc
    except AlreadyPurchasedError as exc:
        raise domain_error(exc, status_code=400) from exc
    except SQLAlchemyError as exc:
        raise store_error(
            exc,
            event="student_course_grant_store_failure",
            student_id=str(student_id),
        ) from exc

    return StudentCourseGrantResponse(
        purchase_id=purchase.id,
        course_id=purchase.course_id,
        status=purchase.status,
    )


@router.delete(
    "/students/{student_id}/courses/{course_id}",
    response_model=StudentCourseRevokeResponse,
)
async def revoke_student_course(
    student_id: UUID,
    course_id: UUID,
    request: Request,
) -> StudentCourseRevokeResponse:
    caller = authenticate_staff(request)

    try:
        async with SessionLocal.begin() as session:
            revocation = await EntitlementAdminService.revoke_course(
                session,
                student_id=student_id,
                course_id=course_id,
                revoked_by=caller.user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except (StudentNotFoundError, PurchaseNotFoundError) as exc:
        raise domain_error(exc, status_code=404) from exc
    except SQLAlchemyError as exc:
        raise store_error(
            exc,
            event="student_course_revoke_store_failure",
            student_id=str(student_id),
        ) from exc

    return StudentCourseRevokeResponse(
        purchase_id=revocation.purchase_id,
        course_id=revocation.course_id,
        outcome=revocation.outcome,
    )
