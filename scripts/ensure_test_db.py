from __future__ import annotations

import argparse
import asyncio
import re

import asyncpg
from alembic import command
from alembic.config import Config
from sqlalchemy.engine import URL, make_url

from app.core.config import get_settings
from app.core.integration_db_safety import assert_safe_integration_db

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _target_database(database_url: str) -> URL:
    assert_safe_integration_db(database_url)
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    if IDENTIFIER_RE.fullmatch(db_name) is None:
        raise RuntimeError(
            f"Unsupported database name '{db_name}'. "
            "Only [A-Za-z0-9_] identifiers are supported."
        )
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")
    return parsed


async def _ensure_database_exists(target: URL) -> bool:
    conn = await asyncpg.connect(
        host=target.host or "localhost",
        port=int(target.port or 5432),
        user=target.username,
        password=target.password,
        database="postgres",
    )
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", target.database)
        if exists:
            return False
        await conn.execute(f'CREATE DATABASE "{target.database}"')
        return True
    finally:
        await conn.close()


def _upgrade_schema(alembic_ini: str) -> None:
    command.upgrade(Config(alembic_ini), "head")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the ledger test database and migrate it")
    parser.add_argument("--skip-migrations", action="store_true")
    parser.add_argument("--alembic-ini", default="alembic.ini")
    args = parser.parse_args()

    target = _target_database(get_settings().database_url)
    created = asyncio.run(_ensure_database_exists(target))
    state = "created" if created else "exists"
    print(f"ensure_test_db: {state} db={target.database} host={target.host}:{target.port or 5432}")  # noqa: T201

    if not args.skip_migrations:
        _upgrade_schema(args.alembic_ini)
        print(f"ensure_test_db: migrated db={target.database} to head")  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
