from __future__ import annotations

from datetime import datetime, timezone

import structlog
from celery.schedules import crontab

from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.session import SessionLocal
from app.services.alerts import send_ops_alert
from app.services.ledger_reliability import find_balance_drift, reconciliation_status
from app.workers.asyncio_runner import run_ledger_job
from app.workers.celery_app import celery_app

DRIFT_SAMPLE_SIZE = 20

logger = structlog.get_logger(__name__)


async def run_ledger_reconciliation_async() -> dict[str, object]:
    started_at = datetime.now(timezone.utc)

    async with SessionLocal.begin() as session:
        rows = await LedgerRepo.list_balance_totals(session)
        drift = find_balance_drift(rows)
        diff_count = len(drift)
        status = reconciliation_status(diff_count)

        await ReconciliationRunsRepo.create(
            session,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status=status,
            users_checked=len(rows),
            diff_count=diff_count,
        )

    result: dict[str, object] = {
        "users_checked": len(rows),
        "diff_count": diff_count,
        "status": status,
    }
    if diff_count > 0:
        alert_payload = {**result, "drift_sample": drift[:DRIFT_SAMPLE_SIZE]}
        logger.warning("ledger_reconciliation_drift_detected", **alert_payload)
        await send_ops_alert(
            event="ledger_reconciliation_drift_detected",
            payload=alert_payload,
        )
    else:
        logger.info("ledger_reconciliation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.ledger_reliability.run_ledger_reconciliation")
def run_ledger_reconciliation() -> dict[str, object]:
    return run_ledger_job(run_ledger_reconciliation_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "ledger-reconciliation-every-15-minutes": {
            "task": "app.workers.tasks.ledger_reliability.run_ledger_reconciliation",
            "schedule": 900.0,
            "options": {"queue": "q_normal"},
        },
        "ledger-reconciliation-daily-0330-utc": {
            "task": "app.workers.tasks.ledger_reliability.run_ledger_reconciliation",
            "schedule": crontab(hour=3, minute=30),
            "options": {"queue": "q_normal"},
        },
    }
)
