import argparse
import asyncio
import sys
from pathlib import Path

"""
Print stock levels at or below their item's reorder level.

Run locally:
  python backend/scripts/report_low_stock.py [--location-id N] [--all]
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.converters import format_quantity
from db.database import async_session_maker
from services import ledger


def format_rows(levels, include_all: bool = False) -> list[str]:
    lines = []
    for lvl in levels:
        if not include_all and not lvl.below_reorder:
            continue
        flag = "LOW" if lvl.below_reorder else "ok"
        lines.append(
            f"{flag:<4} {lvl.item_sku:<10} {lvl.item_name:<24} {lvl.location_name:<18} "
            f"{format_quantity(lvl.current_quantity):>10} {lvl.unit_of_measure:<6} "
            f"(reorder at {format_quantity(lvl.reorder_level)})"
        )
    return lines


async def report(location_id=None, include_all: bool = False) -> list[str]:
    async with async_session_maker() as db:
        levels = await ledger.stock_levels(db, location_id=location_id)
    return format_rows(levels, include_all=include_all)


if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--location-id", type=int, default=None, help="Only this location")
    p.add_argument("--all", action="store_true", help="Show every stock level, not only low ones")
    args = p.parse_args()

    lines = asyncio.run(report(location_id=args.location_id, include_all=args.all))
    if not lines:
        print("No stock levels at or below reorder level.")
    for line in lines:
        print(line)
