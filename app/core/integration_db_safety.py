from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import URL, make_url

TEST_DB_NAME_RE = re.compile(r"test", re.IGNORECASE)
REQUIRED_DRIVER = "asyncpg"
ALLOWED_LOCAL_HOSTS = {
    "localhost",
    "127.0.0.1",
    "::1",
    "postgres",
    "course_ledger_postgres",
}


@dataclass(frozen=True, slots=True)
class IntegrationDbSafetyResult:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def _unsafe_reason(parsed: URL, *, db_name: str, host: str) -> str | None:
    if parsed.get_backend_name() != "postgresql":
        return "Integration tests support only PostgreSQL test databases."
    if parsed.get_driver_name() != REQUIRED_DRIVER:
        return f"Integration tests require the '{REQUIRED_DRIVER}' driver."
    if not db_name:
        return "Database name is empty."
    if TEST_DB_NAME_RE.search(db_name) is None:
        return "Database name must clearly indicate a test database (contain 'test')."
    if host not in ALLOWED_LOCAL_HOSTS:
        return "Host is not in allowed local integration-test hosts."
    return None


def assess_integration_db_safety(database_url: str) -> IntegrationDbSafetyResult:
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()

    reason = _unsafe_reason(parsed, db_name=db_name, host=host)
    return IntegrationDbSafetyResult(
        is_safe=reason is None,
        reason=reason or "ok",
        database_name=db_name,
        host=host,
    )


def assert_safe_integration_db(database_url: str) -> None:
    result = assess_integration_db_safety(database_url)
    if result.is_safe:
        return

    raise RuntimeError(
        "Refusing to run ledger integration tests that TRUNCATE tables.\n"
        f"Reason: {result.reason}\n"
        f"Resolved DB: name='{result.database_name}' host='{result.host}'\n"
        "Required: a dedicated local PostgreSQL test DB, e.g. 'course_ledger_test'."
    )
