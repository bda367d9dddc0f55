"""
Ledger store and stock level calculator.

Stock is never stored as a balance: the quantity of an (item, location) pair
is the sum of its StockMovement rows. Writers that check a balance before
appending must call ``lock_items`` first, in the same transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import as_decimal
from db.database import utcnow
from db.inventory.movement import StockMovement
from db.item import Item
from db.location import Location

logger = logging.getLogger(__name__)


@dataclass
class StockLevel:
    item_id: int
    item_name: str
    item_sku: str
    location_id: int
    location_name: str
    current_quantity: Decimal
    reorder_level: Decimal
    unit_of_measure: str
    below_reorder: bool = field(init=False)

    def __post_init__(self):
        self.below_reorder = self.current_quantity <= self.reorder_level


def append_movement(
    db: AsyncSession,
    *,
    item_id: int,
    location_id: int,
    movement_type: str,
    quantity: Decimal,
    correlation_id: str,
    reference: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
) -> StockMovement:
    """Stage one immutable movement in the current transaction.

    The row gets its id on the next flush; nothing is visible to other
    sessions until the caller commits.
    """
    now = utcnow()
    movement = StockMovement(
        item_id=item_id,
        location_id=location_id,
        movement_type=movement_type,
        quantity=quantity,
        date=occurred_at or now,
        reference=reference,
        correlation_id=correlation_id,
        created_at=now,
    )
    db.add(movement)
    logger.debug(
        "movement staged",
        extra={"item_id": item_id, "location_id": location_id, "movement_type": movement_type,
               "quantity": quantity, "correlation_id": correlation_id},
    )
    return movement


def lock_items_statement(item_ids: Iterable[int]):
    ids = sorted(set(item_ids))
    return select(Item.id).where(Item.id.in_(ids)).order_by(Item.id).with_for_update()


async def lock_items(db: AsyncSession, item_ids: Iterable[int]) -> None:
    """SELECT ... FOR UPDATE on the item rows, in id order.

    Every writer of an item's movements takes this lock before reading a
    balance, so two draw-downs of the same item cannot both pass the
    sufficiency check. Dialects without FOR UPDATE (SQLite) ignore it.
    """
    ids = sorted(set(item_ids))
    if not ids:
        return
    await db.execute(lock_items_statement(ids))


async def current_quantity(db: AsyncSession, item_id: int, location_id: int) -> Decimal:
    res = await db.execute(
        select(func.sum(StockMovement.quantity)).where(
            StockMovement.item_id == item_id,
            StockMovement.location_id == location_id,
        )
    )
    return as_decimal(res.scalar_one_or_none())


async def current_quantities(
    db: AsyncSession, item_ids: Iterable[int], location_id: int
) -> dict[int, Decimal]:
    """Balances of several items at one location; items without movements map to 0."""
    ids = sorted(set(item_ids))
    if not ids:
        return {}
    res = await db.execute(
        select(StockMovement.item_id, func.sum(StockMovement.quantity))
        .where(StockMovement.item_id.in_(ids), StockMovement.location_id == location_id)
        .group_by(StockMovement.item_id)
    )
    out = {item_id: Decimal("0") for item_id in ids}
    for item_id, total in res.all():
        out[item_id] = as_decimal(total)
    return out


async def stock_levels(
    db: AsyncSession,
    item_id: Optional[int] = None,
    location_id: Optional[int] = None,
) -> List[StockLevel]:
    """One row per (item, location) pair that has at least one movement."""
    total = func.sum(StockMovement.quantity).label("current_quantity")
    stmt = (
        select(
            StockMovement.item_id,
            Item.name,
            Item.sku,
            StockMovement.location_id,
            Location.name,
            total,
            Item.reorder_level,
            Item.unit_of_measure,
        )
        .join(Item, Item.id == StockMovement.item_id)
        .join(Location, Location.id == StockMovement.location_id)
        .group_by(
            StockMovement.item_id,
            Item.name,
            Item.sku,
            StockMovement.location_id,
            Location.name,
            Item.reorder_level,
            Item.unit_of_measure,
        )
        .order_by(func.lower(Item.name).asc(), func.lower(Location.name).asc())
    )
    if item_id is not None:
        stmt = stmt.where(StockMovement.item_id == item_id)
    if location_id is not None:
        stmt = stmt.where(StockMovement.location_id == location_id)

    res = await db.execute(stmt)
    return [
        StockLevel(
            item_id=row_item_id,
            item_name=item_name,
            item_sku=item_sku,
            location_id=row_location_id,
            location_name=location_name,
            current_quantity=as_decimal(qty),
            reorder_level=as_decimal(reorder_level),
            unit_of_measure=unit,
        )
        for (row_item_id, item_name, item_sku, row_location_id, location_name, qty, reorder_level, unit) in res.all()
    ]


async def get_movements(
    db: AsyncSession,
    *,
    item_id: Optional[int] = None,
    location_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[StockMovement]:
    """Movements newest first: event date desc, then creation order (id) desc.

    ``start_date`` and ``end_date`` are calendar days, both inclusive.
    """
    stmt = select(StockMovement)
    if item_id is not None:
        stmt = stmt.where(StockMovement.item_id == item_id)
    if location_id is not None:
        stmt = stmt.where(StockMovement.location_id == location_id)
    if movement_type:
        stmt = stmt.where(StockMovement.movement_type == movement_type)
    if start_date:
        stmt = stmt.where(StockMovement.date >= datetime.combine(start_date, time.min))
    if end_date:
        end_excl = datetime.combine(end_date, time.min) + timedelta(days=1)
        stmt = stmt.where(StockMovement.date < end_excl)

    stmt = stmt.order_by(StockMovement.date.desc(), StockMovement.id.desc())
    res = await db.execute(stmt)
    return list(res.scalars().all())
