from app.workers.tasks.ledger_reliability import run_ledger_reconciliation

__all__ = [
    "run_ledger_reconciliation",
]
