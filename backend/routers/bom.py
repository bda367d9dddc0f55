from typing import List, Dict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BomEdgeNotFoundError
from db.database import get_async_session
from schemas.bom import BillOfMaterialCreate, BillOfMaterialOut, BillOfMaterialUpdate
from services import bom


router = APIRouter()


@router.get("/", response_model=List[BillOfMaterialOut])
async def get_bill_of_materials(
    parent_item_id: int | None = Query(None, description="Filter by parent item ID"),
    db: AsyncSession = Depends(get_async_session),
):
    """Get all BOM edges, optionally only the direct components of one parent"""
    return await bom.get_bom_edges(db, parent_item_id)


@router.post("/", response_model=BillOfMaterialOut, status_code=status.HTTP_201_CREATED)
async def create_bill_of_material(
    payload: BillOfMaterialCreate,
    db: AsyncSession = Depends(get_async_session),
):
    return await bom.create_bom_edge(
        db,
        parent_item_id=payload.parent_item_id,
        component_item_id=payload.component_item_id,
        quantity=payload.quantity,
    )


@router.patch("/{bom_id}", response_model=BillOfMaterialOut)
async def update_bill_of_material(
    bom_id: int,
    payload: BillOfMaterialUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    """Update only the supplied fields; rewiring is re-checked for cycles"""
    data = payload.model_dump(exclude_unset=True)
    return await bom.update_bom_edge(
        db,
        bom_id,
        parent_item_id=data.get("parent_item_id"),
        component_item_id=data.get("component_item_id"),
        quantity=data.get("quantity"),
    )


@router.delete("/{bom_id}", response_model=Dict)
async def delete_bill_of_material(
    bom_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    deleted = await bom.delete_bom_edge(db, bom_id)
    if not deleted:
        raise BomEdgeNotFoundError(bom_id)
    return {"deleted": True}
