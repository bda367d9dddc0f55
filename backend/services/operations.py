"""
Movement operations: receive, issue, adjust, transfer, produce.

Each operation validates references, locks the items it will draw down,
checks the balance, and appends its movement(s) inside one unit of work.
Either every movement of the operation is committed or none is.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    ComponentShortage,
    InsufficientComponentStockError,
    InsufficientStockError,
    NoBomError,
    NotManufacturedError,
    SameLocationError,
)
from core.quantities import check_ledger_quantity, parse_quantity
from db.database import utcnow
from db.inventory.movement import (
    ADJUSTMENT,
    CONSUMPTION,
    ISSUE,
    PRODUCTION,
    RECEIPT,
    TRANSFER_IN,
    TRANSFER_OUT,
    StockMovement,
)
from services import bom, catalog, ledger
from services.unit_of_work import atomic

logger = logging.getLogger(__name__)


def _new_correlation_id() -> str:
    return str(uuid.uuid4())


def _clean_reference(reference: Optional[str]) -> Optional[str]:
    if reference is None:
        return None
    reference = reference.strip()
    return reference or None


def production_reference(item_name: str, reference: Optional[str]) -> str:
    base = f"Production of {item_name}"
    return f"{base} - {reference}" if reference else base


async def receive_stock(
    db: AsyncSession,
    *,
    item_id: int,
    location_id: int,
    quantity,
    supplier_id: Optional[int] = None,
    reference: Optional[str] = None,
) -> StockMovement:
    qty = parse_quantity("quantity", quantity)
    reference = _clean_reference(reference)
    correlation_id = _new_correlation_id()

    async with atomic(db, "receive_stock"):
        await catalog.get_item(db, item_id)
        await catalog.get_location(db, location_id)
        if supplier_id is not None:
            supplier = await catalog.get_supplier(db, supplier_id)
            reference = catalog.annotate_reference(reference, "Supplier", supplier.name, supplier.id)

        await ledger.lock_items(db, [item_id])
        movement = ledger.append_movement(
            db,
            item_id=item_id,
            location_id=location_id,
            movement_type=RECEIPT,
            quantity=qty,
            reference=reference,
            correlation_id=correlation_id,
        )
        await db.flush()

    logger.info(
        "stock received",
        extra={"movement_id": movement.id, "item_id": item_id, "location_id": location_id,
               "quantity": qty, "correlation_id": correlation_id},
    )
    return movement


async def issue_stock(
    db: AsyncSession,
    *,
    item_id: int,
    location_id: int,
    quantity,
    customer_id: Optional[int] = None,
    reference: Optional[str] = None,
) -> StockMovement:
    qty = parse_quantity("quantity", quantity)
    reference = _clean_reference(reference)
    correlation_id = _new_correlation_id()

    async with atomic(db, "issue_stock"):
        await catalog.get_item(db, item_id)
        await catalog.get_location(db, location_id)
        if customer_id is not None:
            customer = await catalog.get_customer(db, customer_id)
            reference = catalog.annotate_reference(reference, "Customer", customer.name, customer.id)

        await ledger.lock_items(db, [item_id])
        available = await ledger.current_quantity(db, item_id, location_id)
        if available < qty:
            raise InsufficientStockError(item_id, location_id, available, qty)

        movement = ledger.append_movement(
            db,
            item_id=item_id,
            location_id=location_id,
            movement_type=ISSUE,
            quantity=-qty,
            reference=reference,
            correlation_id=correlation_id,
        )
        await db.flush()

    logger.info(
        "stock issued",
        extra={"movement_id": movement.id, "item_id": item_id, "location_id": location_id,
               "quantity": qty, "correlation_id": correlation_id},
    )
    return movement


async def adjust_stock(
    db: AsyncSession,
    *,
    item_id: int,
    location_id: int,
    quantity,
    reference: Optional[str] = None,
) -> StockMovement:
    """Record a signed correction. No sufficiency check: stock may go to any value."""
    qty = parse_quantity("quantity", quantity, positive=False)
    reference = _clean_reference(reference)
    correlation_id = _new_correlation_id()

    async with atomic(db, "adjust_stock"):
        await catalog.get_item(db, item_id)
        await catalog.get_location(db, location_id)

        await ledger.lock_items(db, [item_id])
        movement = ledger.append_movement(
            db,
            item_id=item_id,
            location_id=location_id,
            movement_type=ADJUSTMENT,
            quantity=qty,
            reference=reference,
            correlation_id=correlation_id,
        )
        await db.flush()

    logger.info(
        "stock adjusted",
        extra={"movement_id": movement.id, "item_id": item_id, "location_id": location_id,
               "quantity": qty, "correlation_id": correlation_id},
    )
    return movement


async def transfer_stock(
    db: AsyncSession,
    *,
    item_id: int,
    from_location_id: int,
    to_location_id: int,
    quantity,
    reference: Optional[str] = None,
) -> List[StockMovement]:
    """Move stock between locations. Returns [transfer_out, transfer_in]."""
    qty = parse_quantity("quantity", quantity)
    reference = _clean_reference(reference)
    correlation_id = _new_correlation_id()

    async with atomic(db, "transfer_stock"):
        await catalog.get_item(db, item_id)
        await catalog.get_location(db, from_location_id)
        await catalog.get_location(db, to_location_id)
        if from_location_id == to_location_id:
            raise SameLocationError(from_location_id)

        await ledger.lock_items(db, [item_id])
        available = await ledger.current_quantity(db, item_id, from_location_id)
        if available < qty:
            raise InsufficientStockError(item_id, from_location_id, available, qty, label="required")

        occurred_at = utcnow()
        transfer_out = ledger.append_movement(
            db,
            item_id=item_id,
            location_id=from_location_id,
            movement_type=TRANSFER_OUT,
            quantity=-qty,
            reference=reference,
            correlation_id=correlation_id,
            occurred_at=occurred_at,
        )
        transfer_in = ledger.append_movement(
            db,
            item_id=item_id,
            location_id=to_location_id,
            movement_type=TRANSFER_IN,
            quantity=qty,
            reference=reference,
            correlation_id=correlation_id,
            occurred_at=occurred_at,
        )
        await db.flush()

    logger.info(
        "stock transferred",
        extra={"item_id": item_id, "from_location_id": from_location_id,
               "to_location_id": to_location_id, "quantity": qty,
               "correlation_id": correlation_id},
    )
    return [transfer_out, transfer_in]


async def produce_item(
    db: AsyncSession,
    *,
    item_id: int,
    location_id: int,
    quantity,
    reference: Optional[str] = None,
) -> List[StockMovement]:
    """Build ``quantity`` units of a manufactured item from its direct components.

    Returns [production, *consumptions], one consumption per BOM edge. Only the
    immediate components are consumed; a component that is itself
    manufactured is never produced on demand.
    """
    qty = parse_quantity("quantity", quantity)
    reference = _clean_reference(reference)
    correlation_id = _new_correlation_id()

    async with atomic(db, "produce_item"):
        item = await catalog.get_item(db, item_id)
        await catalog.get_location(db, location_id)
        if not item.is_manufactured:
            raise NotManufacturedError(item.id, item.name)

        components = await bom.direct_components_of(db, item_id)
        if not components:
            raise NoBomError(item.id, item.name)

        component_ids = [component_id for component_id, _ in components]
        component_items = await catalog.get_items(db, component_ids)
        await ledger.lock_items(db, [item_id, *component_ids])
        available = await ledger.current_quantities(db, component_ids, location_id)

        requirements: List[tuple[int, Decimal]] = []
        shortages: List[ComponentShortage] = []
        for component_id, multiplier in components:
            required = check_ledger_quantity("quantity", multiplier * qty)
            requirements.append((component_id, required))
            if available[component_id] < required:
                shortages.append(
                    ComponentShortage(
                        component_item_id=component_id,
                        component_name=component_items[component_id].name,
                        required=required,
                        available=available[component_id],
                    )
                )
        if shortages:
            raise InsufficientComponentStockError(item_id, location_id, shortages)

        occurred_at = utcnow()
        consumption_reference = production_reference(item.name, reference)
        movements = [
            ledger.append_movement(
                db,
                item_id=item_id,
                location_id=location_id,
                movement_type=PRODUCTION,
                quantity=qty,
                reference=reference,
                correlation_id=correlation_id,
                occurred_at=occurred_at,
            )
        ]
        for component_id, required in requirements:
            movements.append(
                ledger.append_movement(
                    db,
                    item_id=component_id,
                    location_id=location_id,
                    movement_type=CONSUMPTION,
                    quantity=-required,
                    reference=consumption_reference,
                    correlation_id=correlation_id,
                    occurred_at=occurred_at,
                )
            )
        await db.flush()

    logger.info(
        "item produced",
        extra={"item_id": item_id, "location_id": location_id, "quantity": qty,
               "components": len(requirements), "correlation_id": correlation_id},
    )
    return movements
