from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from app.core.money import ZERO, to_money


def find_balance_drift(
    rows: list[tuple[UUID, Decimal, Decimal]],
) -> list[dict[str, str]]:
    drift: list[dict[str, str]] = []
    for user_id, balance, ledger_total in rows:
        stored_balance = to_money(balance)
        ledger_balance = to_money(ledger_total)
        if stored_balance == ledger_balance and stored_balance >= ZERO:
            continue
        drift.append(
            {
                "user_id": str(user_id),
                "balance": str(stored_balance),
                "ledger_total": str(ledger_balance),
            }
        )
    return drift


def reconciliation_status(diff_count: int) -> str:
    return "OK" if diff_count == 0 else "DIFF"
