from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from schemas.inventory import (
    AdjustStockRequest,
    CurrentQuantityOut,
    IssueStockRequest,
    MovementType,
    ProduceItemRequest,
    ReceiveStockRequest,
    StockLevelOut,
    StockMovementOut,
    TransferStockRequest,
)
from services import catalog, ledger, operations

router = APIRouter()


@router.post("/receipts", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
async def receive_stock(
    payload: ReceiveStockRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Record incoming stock; the supplier, if given, is noted in the reference."""
    return await operations.receive_stock(
        db,
        item_id=payload.item_id,
        location_id=payload.location_id,
        quantity=payload.quantity,
        supplier_id=payload.supplier_id,
        reference=payload.reference,
    )


@router.post("/issues", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
async def issue_stock(
    payload: IssueStockRequest,
    db: AsyncSession = Depends(get_async_session),
):
    return await operations.issue_stock(
        db,
        item_id=payload.item_id,
        location_id=payload.location_id,
        quantity=payload.quantity,
        customer_id=payload.customer_id,
        reference=payload.reference,
    )


@router.post("/adjustments", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
async def adjust_stock(
    payload: AdjustStockRequest,
    db: AsyncSession = Depends(get_async_session),
):
    return await operations.adjust_stock(
        db,
        item_id=payload.item_id,
        location_id=payload.location_id,
        quantity=payload.quantity,
        reference=payload.reference,
    )


@router.post("/transfers", response_model=List[StockMovementOut], status_code=status.HTTP_201_CREATED)
async def transfer_stock(
    payload: TransferStockRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Transfer stock between two locations.

    - Creates two movement rows (Transfer Out at the source, Transfer In at the destination).
    - Both share the same date, reference and correlation_id.
    """
    return await operations.transfer_stock(
        db,
        item_id=payload.item_id,
        from_location_id=payload.from_location_id,
        to_location_id=payload.to_location_id,
        quantity=payload.quantity,
        reference=payload.reference,
    )


@router.post("/productions", response_model=List[StockMovementOut], status_code=status.HTTP_201_CREATED)
async def produce_item(
    payload: ProduceItemRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Produce a manufactured item from its bill of materials.

    The first movement is the Production row; the rest are Consumption rows,
    one per direct component.
    """
    return await operations.produce_item(
        db,
        item_id=payload.item_id,
        location_id=payload.location_id,
        quantity=payload.quantity,
        reference=payload.reference,
    )


@router.get("/stock", response_model=List[StockLevelOut])
async def get_stock_levels(
    item_id: Optional[int] = None,
    location_id: Optional[int] = None,
    db: AsyncSession = Depends(get_async_session),
):
    return await ledger.stock_levels(db, item_id=item_id, location_id=location_id)


@router.get("/stock/current", response_model=CurrentQuantityOut)
async def get_current_quantity(
    item_id: int,
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    await catalog.get_item(db, item_id)
    await catalog.get_location(db, location_id)
    quantity = await ledger.current_quantity(db, item_id, location_id)
    return {"item_id": item_id, "location_id": location_id, "quantity": quantity}


@router.get("/movements", response_model=List[StockMovementOut])
async def list_movements(
    item_id: Optional[int] = None,
    location_id: Optional[int] = None,
    movement_type: Optional[MovementType] = Query(None),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_async_session),
):
    return await ledger.get_movements(
        db,
        item_id=item_id,
        location_id=location_id,
        movement_type=movement_type,
        start_date=start_date,
        end_date=end_date,
    )
