from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy.exc import ProgrammingError

from app.api.routes import balance, identity
from app.economy.balance.errors import (
    BalanceCourseNotFoundError,
    BalanceUserNotFoundError,
    LedgerInvariantError,
)
from app.economy.balance.service import BalanceService
from app.economy.balance.types import BalanceSnapshot, OwnedCourse, TransactionPage
from app.main import app

USER_ID = uuid4()
CREATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class _SessionContext:
    async def __aenter__(self) -> object:
        return object()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


def _client(monkeypatch) -> TestClient:
    monkeypatch.setattr(
        identity,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="127.0.0.1/32",
            internal_api_trusted_proxies="",
        ),
    )
    monkeypatch.setattr(balance, "SessionLocal", lambda: _SessionContext())
    return TestClient(app, client=("127.0.0.1", 50000))


HEADERS = {"X-Internal-Token": "internal-secret", "X-User-Id": str(USER_ID)}


def test_get_balance(monkeypatch) -> None:
    async def _fake_get_balance(session, *, user_id):
        return BalanceSnapshot(user_id=user_id, balance=Decimal("20"))

    monkeypatch.setattr(BalanceService, "get_balance", _fake_get_balance)
    client = _client(monkeypatch)

    response = client.get("/balance", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"balance": "20.00"}


def test_get_balance_errors(monkeypatch) -> None:
    cases = [
        (BalanceUserNotFoundError(), 404, "E_USER_NOT_FOUND"),
        (LedgerInvariantError(), 500, "E_NEGATIVE_BALANCE"),
        (
            ProgrammingError("SELECT", {}, SimpleNamespace(sqlstate="42P01")),
            503,
            "E_LEDGER_NOT_INITIALIZED",
        ),
    ]
    client = _client(monkeypatch)

    for error, status_code, code in cases:
        async def _fake_get_balance(session, *, user_id, _error=error):
            raise _error

        monkeypatch.setattr(BalanceService, "get_balance", _fake_get_balance)
        response = client.get("/balance", headers=HEADERS)
        assert response.status_code == status_code
        assert response.json() == {"detail": {"code": code}}


def test_list_balance_transactions(monkeypatch) -> None:
    purchase_id = uuid4()
    captured: dict[str, object] = {}

    async def _fake_list(session, *, user_id, limit, before_id):
        captured.update({"user_id": user_id, "limit": limit, "before_id": before_id})
        return TransactionPage(
            transactions=[
                SimpleNamespace(
                    id=41,
                    amount=Decimal("-80"),
                    type="PURCHASE",
                    description="Course purchase: Python Basics",
                    balance_after=Decimal("20"),
                    purchase_id=purchase_id,
                    created_at=CREATED_AT,
                )
            ],
            next_before_id=41,
        )

    monkeypatch.setattr(BalanceService, "list_transactions", _fake_list)
    client = _client(monkeypatch)

    response = client.get(
        "/balance/transactions",
        params={"limit": 1, "beforeId": 50},
        headers=HEADERS,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["nextBeforeId"] == 41
    (item,) = payload["transactions"]
    assert item["amount"] == "-80.00"
    assert item["balanceAfter"] == "20.00"
    assert item["purchaseId"] == str(purchase_id)
    assert item["type"] == "PURCHASE"
    assert captured == {"user_id": USER_ID, "limit": 1, "before_id": 50}


def test_list_owned_courses(monkeypatch) -> None:
    owned = OwnedCourse(
        purchase_id=uuid4(),
        course_id=uuid4(),
        title="Async Python",
        final_price=Decimal("0"),
        purchased_at=CREATED_AT,
    )

    async def _fake_list(session, *, user_id):
        return [owned]

    monkeypatch.setattr(BalanceService, "list_purchases", _fake_list)
    client = _client(monkeypatch)

    response = client.get("/purchases", headers=HEADERS)

    assert response.status_code == 200
    (item,) = response.json()["purchases"]
    assert item["courseId"] == str(owned.course_id)
    assert item["title"] == "Async Python"
    assert item["finalPrice"] == "0.00"


def test_course_access(monkeypatch) -> None:
    course_id = uuid4()

    async def _fake_access(session, *, user_id, course_id):
        return course_id is not None

    monkeypatch.setattr(BalanceService, "has_course_access", _fake_access)
    client = _client(monkeypatch)

    response = client.get(f"/courses/{course_id}/access", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"hasAccess": True}


def test_course_access_unknown_course_returns_404(monkeypatch) -> None:
    async def _fake_access(session, *, user_id, course_id):
        raise BalanceCourseNotFoundError

    monkeypatch.setattr(BalanceService, "has_course_access", _fake_access)
    client = _client(monkeypatch)

    response = client.get(f"/courses/{uuid4()}/access", headers=HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_COURSE_NOT_FOUND"}}


def test_forwarded_client_ip_is_honoured_behind_trusted_proxy(monkeypatch) -> None:
    async def _fake_get_balance(session, *, user_id):
        return BalanceSnapshot(user_id=user_id, balance=Decimal("5"))

    monkeypatch.setattr(BalanceService, "get_balance", _fake_get_balance)
    client = _client(monkeypatch)
    monkeypatch.setattr(
        identity,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="10.1.1.8/32",
            internal_api_trusted_proxies="127.0.0.1/32",
        ),
    )

    allowed = client.get("/balance", headers={**HEADERS, "X-Forwarded-For": "10.1.1.8"})
    rejected = client.get("/balance", headers=HEADERS)

    assert allowed.status_code == 200
    assert allowed.json() == {"balance": "5.00"}
    assert rejected.status_code == 403
