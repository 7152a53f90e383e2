from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, ProgrammingError

from app.db import schema_guard
from app.db.models.base import Base


class _Inspector:
    def __init__(self, tables: dict[str, set[str]]) -> None:
        self._tables = tables

    def get_table_names(self) -> list[str]:
        return list(self._tables)

    def get_columns(self, table_name: str) -> list[dict[str, str]]:
        return [{"name": name} for name in self._tables[table_name]]


def _full_schema() -> dict[str, set[str]]:
    return {
        table.name: {column.name for column in table.columns}
        for table in Base.metadata.sorted_tables
    }


def test_find_missing_schema_objects_returns_empty_for_complete_schema(monkeypatch) -> None:
    monkeypatch.setattr(schema_guard, "inspect", lambda connection: _Inspector(_full_schema()))

    assert schema_guard.find_missing_schema_objects(object()) == []


def test_find_missing_schema_objects_reports_missing_tables_and_columns(monkeypatch) -> None:
    tables = _full_schema()
    del tables["reconciliation_runs"]
    tables["promo_codes"].discard("deleted_at")
    monkeypatch.setattr(schema_guard, "inspect", lambda connection: _Inspector(tables))

    missing = schema_guard.find_missing_schema_objects(object())

    assert "reconciliation_runs" in missing
    assert "promo_codes.deleted_at" in missing


def test_ledger_not_initialized_error_lists_missing_objects() -> None:
    error = schema_guard.LedgerNotInitializedError(["promo_codes.deleted_at"])

    assert error.missing == ["promo_codes.deleted_at"]
    assert "promo_codes.deleted_at" in str(error)
    assert "alembic upgrade head" in str(error)


@pytest.mark.parametrize("sqlstate", ["42P01", "42703"])
def test_is_schema_drift_error_detects_undefined_objects(sqlstate: str) -> None:
    orig = SimpleNamespace(sqlstate=sqlstate)
    exc = ProgrammingError("SELECT deleted_at FROM promo_codes", {}, orig)

    assert schema_guard.is_schema_drift_error(exc) is True


def test_is_schema_drift_error_ignores_other_errors() -> None:
    integrity = IntegrityError("INSERT", {}, SimpleNamespace(sqlstate="23505"))

    assert schema_guard.is_schema_drift_error(integrity) is False
    assert schema_guard.is_schema_drift_error(RuntimeError("boom")) is False
