from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import text

from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.session import SessionLocal
from app.economy.purchases.service import PurchaseService
from app.workers.tasks import ledger_reliability
from tests.integration.ledger_fixtures import UTC, _create_course, _create_user


async def _no_alert(*, event: str, payload: dict[str, object]) -> bool:
    return False


@pytest.mark.asyncio
async def test_reconciliation_reports_ok_after_purchases(monkeypatch) -> None:
    monkeypatch.setattr(ledger_reliability, "send_ops_alert", _no_alert)
    user_id = await _create_user("reconcile-ok", balance="100.00")
    await _create_user("reconcile-empty")
    course_id = await _create_course("Reconciled Course", price="35.00")
    await PurchaseService.checkout(user_id=user_id, course_id=course_id, now_utc=datetime.now(UTC))

    result = await ledger_reliability.run_ledger_reconciliation_async()

    assert result == {"users_checked": 2, "diff_count": 0, "status": "OK"}
    async with SessionLocal() as session:
        run = await ReconciliationRunsRepo.get_latest(session)
    assert run is not None
    assert run.status == "OK"
    assert run.users_checked == 2


@pytest.mark.asyncio
async def test_reconciliation_detects_balance_edited_outside_ledger(monkeypatch) -> None:
    alerts: list[dict[str, object]] = []

    async def _capture_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append({"event": event, "payload": payload})
        return True

    monkeypatch.setattr(ledger_reliability, "send_ops_alert", _capture_alert)
    user_id = await _create_user("reconcile-drift", balance="100.00")
    async with SessionLocal.begin() as session:
        await session.execute(
            text("UPDATE users SET balance = balance + 5 WHERE id = :user_id"),
            {"user_id": user_id},
        )

    result = await ledger_reliability.run_ledger_reconciliation_async()

    assert result["status"] == "DIFF"
    assert result["diff_count"] == 1
    assert alerts[0]["event"] == "ledger_reconciliation_drift_detected"
    assert alerts[0]["payload"]["drift_sample"] == [
        {"user_id": str(user_id), "balance": "105.00", "ledger_total": "100.00"}
    ]
