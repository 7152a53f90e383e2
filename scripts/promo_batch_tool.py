from __future__ import annotations

import argparse
import asyncio
import csv
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from app.db.session import SessionLocal, dispose_engine
from app.economy.promo.admin import BULK_MAX_QUANTITY, PromoAdminService
from app.economy.promo.codes import generate_unique_codes


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate single-use 100% promo codes for a course")
    parser.add_argument("--course-id", type=UUID, required=True)
    parser.add_argument("--count", type=int, required=True, help=f"1..{BULK_MAX_QUANTITY}")
    parser.add_argument("--created-by", type=UUID)
    parser.add_argument("--description")
    parser.add_argument("--output-csv", type=Path)
    parser.add_argument("--dry-run", action="store_true")
    return parser.parse_args()


async def _create_codes(args: argparse.Namespace) -> list[tuple[str, str]]:
    try:
        async with SessionLocal.begin() as session:
            promo_codes = await PromoAdminService.create_codes_bulk(
                session,
                course_id=args.course_id,
                quantity=args.count,
                created_by=args.created_by,
                description=args.description,
                now_utc=datetime.now(timezone.utc),
            )
            return [(promo_code.code, str(promo_code.id)) for promo_code in promo_codes]
    finally:
        await dispose_engine()


def _write_output(path: Path, rows: list[tuple[str, str]], *, course_id: UUID) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(["code", "promo_code_id", "course_id"])
        for code, promo_code_id in rows:
            writer.writerow([code, promo_code_id, str(course_id)])


async def _run() -> int:
    args = _parse_args()
    if args.count < 1 or args.count > BULK_MAX_QUANTITY:
        raise ValueError(f"--count must be in range 1..{BULK_MAX_QUANTITY}")

    if args.dry_run:
        rows = [(code, "") for code in generate_unique_codes(count=args.count)]
    else:
        rows = await _create_codes(args)

    output_csv = args.output_csv or Path("reports/promo_batch_output.csv")
    _write_output(output_csv, rows, course_id=args.course_id)
    print(
        f"processed={len(rows)} inserted={0 if args.dry_run else len(rows)} output={output_csv}"  # noqa: T201
    )
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
