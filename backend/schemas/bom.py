from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator


def _positive(v: Decimal | None) -> Decimal | None:
    if v is not None and v <= 0:
        raise ValueError("quantity must be > 0")
    return v


class BillOfMaterialOut(BaseModel):
    id: int
    parent_item_id: int
    component_item_id: int
    quantity: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class BillOfMaterialCreate(BaseModel):
    parent_item_id: int
    component_item_id: int
    quantity: Decimal

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal | None) -> Decimal | None:
        return _positive(v)


class BillOfMaterialUpdate(BaseModel):
    parent_item_id: int | None = None
    component_item_id: int | None = None
    quantity: Decimal | None = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal | None) -> Decimal | None:
        return _positive(v)
