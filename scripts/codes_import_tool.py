from __future__ import annotations

import argparse
import asyncio
import csv
from pathlib import Path

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import build_engine, build_session_factory
from app.store.codes.service import CodeStore
from app.store.inventory.projection import InventoryProjection


def _load_codes_from_csv(path: Path) -> list[str]:
    rows: list[str] = []
    with path.open("r", encoding="utf-8", newline="") as file:
        reader = csv.DictReader(file)
        if "code" in (reader.fieldnames or []):
            for row in reader:
                value = (row.get("code") or "").strip()
                if value:
                    rows.append(value)
            return rows

    with path.open("r", encoding="utf-8", newline="") as file:
        for line in file:
            value = line.strip()
            if value:
                rows.append(value)
    return rows


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Redemption code import / embedded inventory backfill tool")
    parser.add_argument("--product-id", required=True)
    parser.add_argument("--import-csv", type=Path, help="CSV with a 'code' column, or one code per line")
    parser.add_argument(
        "--backfill-embedded",
        action="store_true",
        help="move the product's legacy availableCodes into the codes table and rebuild stock",
    )
    parser.add_argument("--dry-run", action="store_true")
    return parser.parse_args()


def _validate_args(args: argparse.Namespace) -> None:
    if args.import_csv and args.backfill_embedded:
        raise ValueError("use either --import-csv or --backfill-embedded")
    if not args.import_csv and not args.backfill_embedded:
        raise ValueError("one of --import-csv or --backfill-embedded is required")
    if not args.product_id.strip():
        raise ValueError("--product-id must not be empty")


async def _run() -> int:
    args = _parse_args()
    _validate_args(args)
    settings = get_settings()
    configure_logging(settings.log_level, service="matajir-codes-import")

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            await session.begin()
            if args.import_csv:
                codes = _load_codes_from_csv(args.import_csv)
                if not codes:
                    raise ValueError(f"no codes found in {args.import_csv}")
                result = await CodeStore.add_codes(session, product_id=args.product_id, codes=codes)
                summary = f"read={len(codes)} inserted={len(result.inserted)} duplicates={result.duplicates}"
            else:
                backfill = await InventoryProjection.backfill_from_embedded(session, product_id=args.product_id)
                summary = (
                    f"imported={backfill.imported} already_present={backfill.already_present} "
                    f"stock={backfill.stock}"
                )

            if args.dry_run:
                await session.rollback()
            else:
                await session.commit()
    finally:
        await engine.dispose()

    print(f"product_id={args.product_id} {summary} dry_run={args.dry_run}")  # noqa: T201
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
