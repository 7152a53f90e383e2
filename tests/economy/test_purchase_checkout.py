from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.db.schema_guard import LedgerNotInitializedError
from app.economy.purchases import service as purchase_service
from app.economy.purchases.errors import InsufficientBalanceError, PurchaseStoreError

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class _Transaction:
    def __init__(self, session: object) -> None:
        self._session = session

    async def __aenter__(self) -> object:
        return self._session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SessionFactory:
    def __init__(self) -> None:
        self.sessions: list[object] = []

    def begin(self) -> _Transaction:
        session = object()
        self.sessions.append(session)
        return _Transaction(session)


@pytest.mark.asyncio
async def test_checkout_returns_receipt_from_single_transaction(monkeypatch) -> None:
    factory = _SessionFactory()
    expected = SimpleNamespace(purchase_id=uuid4())
    captured: dict[str, object] = {}

    async def _fake_purchase_course(session, **kwargs):
        captured["session"] = session
        captured.update(kwargs)
        return expected

    monkeypatch.setattr(purchase_service, "SessionLocal", factory)
    monkeypatch.setattr(purchase_service, "purchase_course", _fake_purchase_course)
    user_id, course_id = uuid4(), uuid4()

    receipt = await purchase_service.checkout(
        user_id=user_id,
        course_id=course_id,
        now_utc=NOW_UTC,
        promo_code="AB12CD",
    )

    assert receipt is expected
    assert captured == {
        "session": factory.sessions[0],
        "user_id": user_id,
        "course_id": course_id,
        "promo_code": "AB12CD",
        "now_utc": NOW_UTC,
    }


@pytest.mark.asyncio
async def test_checkout_reraises_domain_errors_without_failure_record(monkeypatch) -> None:
    recorded: list[dict[str, object]] = []

    async def _fake_purchase_course(session, **kwargs):
        raise InsufficientBalanceError

    async def _fake_record(**kwargs):
        recorded.append(kwargs)
        return True

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(purchase_service, "purchase_course", _fake_purchase_course)
    monkeypatch.setattr(purchase_service, "record_failed_purchase", _fake_record)

    with pytest.raises(InsufficientBalanceError):
        await purchase_service.checkout(user_id=uuid4(), course_id=uuid4(), now_utc=NOW_UTC)

    assert recorded == []


@pytest.mark.asyncio
async def test_checkout_records_failed_slot_on_store_error(monkeypatch) -> None:
    recorded: list[dict[str, object]] = []

    async def _fake_purchase_course(session, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("connection reset"))

    async def _fake_record(**kwargs):
        recorded.append(kwargs)
        return True

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(purchase_service, "purchase_course", _fake_purchase_course)
    monkeypatch.setattr(purchase_service, "record_failed_purchase", _fake_record)
    user_id, course_id = uuid4(), uuid4()

    with pytest.raises(PurchaseStoreError):
        await purchase_service.checkout(user_id=user_id, course_id=course_id, now_utc=NOW_UTC)

    assert recorded == [
        {
            "user_id": user_id,
            "course_id": course_id,
            "failure_reason": "OperationalError",
            "now_utc": NOW_UTC,
        }
    ]


@pytest.mark.asyncio
async def test_checkout_maps_schema_drift_to_not_initialized(monkeypatch) -> None:
    recorded: list[dict[str, object]] = []

    async def _fake_purchase_course(session, **kwargs):
        raise ProgrammingError(
            "SELECT promo_codes.deleted_at",
            {},
            SimpleNamespace(sqlstate="42703"),
        )

    async def _fake_record(**kwargs):
        recorded.append(kwargs)
        return True

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(purchase_service, "purchase_course", _fake_purchase_course)
    monkeypatch.setattr(purchase_service, "record_failed_purchase", _fake_record)

    with pytest.raises(LedgerNotInitializedError):
        await purchase_service.checkout(user_id=uuid4(), course_id=uuid4(), now_utc=NOW_UTC)

    assert recorded == []


@pytest.mark.asyncio
async def test_record_failed_purchase_inserts_failed_slot(monkeypatch) -> None:
    course = SimpleNamespace(id=uuid4(), price=Decimal("80"))
    user = SimpleNamespace(id=uuid4())
    captured: dict[str, object] = {}

    async def _get_course(session, course_id):
        return course

    async def _get_user(session, user_id):
        return user

    async def _try_create(session, **kwargs):
        captured.update(kwargs)
        return True

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(CoursesRepo, "get_by_id", _get_course)
    monkeypatch.setattr(UsersRepo, "get_by_id", _get_user)
    monkeypatch.setattr(PurchasesRepo, "try_create_failed_slot", _try_create)

    recorded = await purchase_service.record_failed_purchase(
        user_id=user.id,
        course_id=course.id,
        failure_reason="OperationalError",
        now_utc=NOW_UTC,
    )

    assert recorded is True
    assert captured == {
        "user_id": user.id,
        "course_id": course.id,
        "original_price": Decimal("80.00"),
        "failure_reason": "OperationalError",
        "now_utc": NOW_UTC,
    }


@pytest.mark.asyncio
async def test_record_failed_purchase_skips_unknown_course(monkeypatch) -> None:
    async def _get_course(session, course_id):
        return None

    async def _get_user(session, user_id):
        return SimpleNamespace(id=user_id)

    async def _try_create(session, **kwargs):
        raise AssertionError("failed slot must not be written")

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(CoursesRepo, "get_by_id", _get_course)
    monkeypatch.setattr(UsersRepo, "get_by_id", _get_user)
    monkeypatch.setattr(PurchasesRepo, "try_create_failed_slot", _try_create)

    recorded = await purchase_service.record_failed_purchase(
        user_id=uuid4(),
        course_id=uuid4(),
        failure_reason="OperationalError",
        now_utc=NOW_UTC,
    )

    assert recorded is False


@pytest.mark.asyncio
async def test_record_failed_purchase_returns_false_when_store_is_down(monkeypatch) -> None:
    async def _get_course(session, course_id):
        raise OperationalError("SELECT courses", {}, Exception("connection refused"))

    monkeypatch.setattr(purchase_service, "SessionLocal", _SessionFactory())
    monkeypatch.setattr(CoursesRepo, "get_by_id", _get_course)

    recorded = await purchase_service.record_failed_purchase(
        user_id=uuid4(),
        course_id=uuid4(),
        failure_reason="OperationalError",
        now_utc=NOW_UTC,
    )

    assert recorded is False
