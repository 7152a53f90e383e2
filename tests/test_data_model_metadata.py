from __future__ import annotations

from sqlalchemy import CheckConstraint, UniqueConstraint

from app.db.models import (  # noqa: F401
    BalanceTransaction,
    Course,
    PromoCode,
    Purchase,
    ReconciliationRun,
    User,
)
from app.db.models.base import Base


def _constraint_names(table_name: str, constraint_type: type) -> set[str]:
    table = Base.metadata.tables[table_name]
    return {
        constraint.name
        for constraint in table.constraints
        if isinstance(constraint, constraint_type) and constraint.name
    }


def test_all_ledger_tables_registered() -> None:
    assert set(Base.metadata.tables) == {
        "users",
        "courses",
        "promo_codes",
        "purchases",
        "balance_transactions",
        "reconciliation_runs",
    }


def test_purchase_pair_is_unique() -> None:
    assert "uq_purchases_user_course" in _constraint_names("purchases", UniqueConstraint)


def test_money_and_usage_checks_present() -> None:
    assert "ck_users_balance_non_negative" in _constraint_names("users", CheckConstraint)
    assert "ck_purchases_final_price" in _constraint_names("purchases", CheckConstraint)
    assert {
        "ck_promo_codes_used_count_non_negative",
        "ck_promo_codes_usage_limit_positive",
        "ck_promo_codes_used_count_le_limit",
    }.issubset(_constraint_names("promo_codes", CheckConstraint))
    assert "ck_balance_transactions_amount_sign" in _constraint_names(
        "balance_transactions",
        CheckConstraint,
    )


def test_promo_codes_keep_soft_delete_marker() -> None:
    columns = Base.metadata.tables["promo_codes"].columns
    assert "deleted_at" in columns
    assert columns["deleted_at"].nullable is True
    assert "uq_promo_codes_code" in _constraint_names("promo_codes", UniqueConstraint)


def test_purchase_status_allows_revoked_slots() -> None:
    (status_check,) = [
        constraint
        for constraint in Base.metadata.tables["purchases"].constraints
        if isinstance(constraint, CheckConstraint) and constraint.name == "ck_purchases_status"
    ]
    assert "'REVOKED'" in str(status_check.sqltext)
