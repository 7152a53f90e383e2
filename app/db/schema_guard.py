from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

import app.db.models  # noqa: F401
from app.db.models.base import Base

UNDEFINED_TABLE_SQLSTATE = "42P01"
UNDEFINED_COLUMN_SQLSTATE = "42703"
SCHEMA_DRIFT_SQLSTATES = {UNDEFINED_TABLE_SQLSTATE, UNDEFINED_COLUMN_SQLSTATE}


class LedgerNotInitializedError(RuntimeError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        details = ", ".join(self.missing) if self.missing else "unknown objects"
        super().__init__(
            f"ledger schema is not initialized (missing: {details}); run 'alembic upgrade head'"
        )


def find_missing_schema_objects(connection: Connection) -> list[str]:
    inspector = inspect(connection)
    existing_tables = set(inspector.get_table_names())

    missing: list[str] = []
    for table in Base.metadata.sorted_tables:
        if table.name not in existing_tables:
            missing.append(table.name)
            continue
        existing_columns = {column["name"] for column in inspector.get_columns(table.name)}
        missing.extend(
            f"{table.name}.{column.name}"
            for column in table.columns
            if column.name not in existing_columns
        )
    return missing


async def assert_schema_initialized(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        missing = await conn.run_sync(find_missing_schema_objects)
    if missing:
        raise LedgerNotInitializedError(missing)


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


def is_schema_drift_error(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    return _sqlstate(exc) in SCHEMA_DRIFT_SQLSTATES


def as_not_initialized(exc: DBAPIError) -> LedgerNotInitializedError:
    return LedgerNotInitializedError([str(exc.orig).splitlines()[0] if exc.orig else "unknown"])
