import asyncio
import sys
from pathlib import Path
from decimal import Decimal

"""
Seed demo master data (items, locations, suppliers, customers), a bill of
materials and opening stock into the database.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Re-running is safe: records are matched by name, BOM edges by
(parent, component), and opening stock is only received where a location has
no movements yet for that item.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.bill_of_material import BillOfMaterial
from db.customer import Customer
from db.database import async_session_maker, create_db_and_tables
from db.inventory.movement import StockMovement
from db.item import Item
from db.location import Location
from db.supplier import Supplier
from services import bom, operations


DEMO_ITEMS = [
    # name, sku, unit, manufactured, reorder level, cost, sale
    ("Steel Frame", "FRM-001", "pcs", False, Decimal("10"), Decimal("12.50"), Decimal("0")),
    ("Wheel", "WHL-001", "pcs", False, Decimal("20"), Decimal("8.00"), Decimal("0")),
    ("Chain Oil", "OIL-001", "l", False, Decimal("2"), Decimal("6.00"), Decimal("0")),
    ("City Bike", "BIK-001", "pcs", True, Decimal("3"), Decimal("0"), Decimal("249.00")),
]

DEMO_BOM = [
    # parent, component, units of component per unit of parent
    ("City Bike", "Steel Frame", Decimal("1")),
    ("City Bike", "Wheel", Decimal("2")),
    ("City Bike", "Chain Oil", Decimal("0.05")),
]

OPENING_STOCK = [
    # item, location, quantity
    ("Steel Frame", "Main Warehouse", Decimal("40")),
    ("Wheel", "Main Warehouse", Decimal("100")),
    ("Chain Oil", "Main Warehouse", Decimal("5")),
]


async def get_or_create_by_name(session, model, name: str, **fields):
    result = await session.execute(
        select(model).where(func.lower(model.name) == name.strip().lower())
    )
    obj = result.scalar_one_or_none()
    if obj:
        return obj, False

    obj = model(name=name.strip(), **fields)
    session.add(obj)
    await session.flush()
    return obj, True


async def seed(session) -> dict:
    """Create the demo records; returns counts of what was added."""
    added = {"items": 0, "bom_edges": 0, "receipts": 0}

    items: dict[str, Item] = {}
    for name, sku, unit, manufactured, reorder, cost, sale in DEMO_ITEMS:
        items[name], created = await get_or_create_by_name(
            session,
            Item,
            name,
            sku=sku,
            unit_of_measure=unit,
            is_manufactured=manufactured,
            reorder_level=reorder,
            cost_price=cost,
            sale_price=sale,
        )
        added["items"] += int(created)

    warehouse, _ = await get_or_create_by_name(session, Location, "Main Warehouse", description="Raw materials")
    await get_or_create_by_name(session, Location, "Assembly Floor", description="Production line")
    await get_or_create_by_name(session, Location, "Shop", description="Finished goods")
    await get_or_create_by_name(session, Supplier, "Acme Components", contact_person="Dana", email="sales@acme.example")
    await get_or_create_by_name(session, Customer, "Velo Retail", contact_person="Noa", email="buying@velo.example")

    item_ids = {name: it.id for name, it in items.items()}
    location_ids = {"Main Warehouse": warehouse.id}
    await session.commit()

    for parent, component, qty in DEMO_BOM:
        existing = await session.execute(
            select(BillOfMaterial.id).where(
                BillOfMaterial.parent_item_id == item_ids[parent],
                BillOfMaterial.component_item_id == item_ids[component],
            )
        )
        if existing.scalar_one_or_none() is not None:
            continue
        await bom.create_bom_edge(
            session,
            parent_item_id=item_ids[parent],
            component_item_id=item_ids[component],
            quantity=qty,
        )
        added["bom_edges"] += 1

    for item_name, location_name, qty in OPENING_STOCK:
        has_movements = await session.execute(
            select(StockMovement.id).where(
                StockMovement.item_id == item_ids[item_name],
                StockMovement.location_id == location_ids[location_name],
            ).limit(1)
        )
        if has_movements.scalar_one_or_none() is not None:
            continue
        await operations.receive_stock(
            session,
            item_id=item_ids[item_name],
            location_id=location_ids[location_name],
            quantity=qty,
            reference="Opening stock",
        )
        added["receipts"] += 1

    return added


async def main() -> None:
    await create_db_and_tables()
    async with async_session_maker() as session:
        added = await seed(session)
    print(
        f"Seeded items: {added['items']}, bom edges: {added['bom_edges']}, "
        f"opening receipts: {added['receipts']}"
    )


if __name__ == "__main__":
    asyncio.run(main())
