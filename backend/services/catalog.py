"""Read-only lookups into the master records (items, locations, suppliers, customers).

Creating and editing those records belongs to the catalog collaborator; the
ledger only needs to know that an id exists and a few display fields.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from db.customer import Customer
from db.item import Item
from db.location import Location
from db.supplier import Supplier


async def _get_or_raise(db: AsyncSession, model, entity: str, entity_id: int):
    res = await db.execute(select(model).where(model.id == entity_id))
    obj = res.scalar_one_or_none()
    if obj is None:
        raise NotFoundError(entity, entity_id)
    return obj


async def get_item(db: AsyncSession, item_id: int) -> Item:
    return await _get_or_raise(db, Item, "Item", item_id)


async def get_location(db: AsyncSession, location_id: int) -> Location:
    return await _get_or_raise(db, Location, "Location", location_id)


async def get_supplier(db: AsyncSession, supplier_id: int) -> Supplier:
    return await _get_or_raise(db, Supplier, "Supplier", supplier_id)


async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
    return await _get_or_raise(db, Customer, "Customer", customer_id)


async def get_items(db: AsyncSession, item_ids: Iterable[int]) -> dict[int, Item]:
    """Load several items at once; raises NotFoundError for the first missing id."""
    wanted = sorted(set(item_ids))
    if not wanted:
        return {}
    res = await db.execute(select(Item).where(Item.id.in_(wanted)))
    found = {it.id: it for it in res.scalars().all()}
    for item_id in wanted:
        if item_id not in found:
            raise NotFoundError("Item", item_id)
    return found


def annotate_reference(reference: str | None, label: str, name: str, entity_id: int) -> str:
    """Append "<label>: <name> (ID: <id>)" to a free text reference."""
    note = f"{label}: {name} (ID: {entity_id})"
    reference = (reference or "").strip()
    return f"{reference} - {note}" if reference else note
