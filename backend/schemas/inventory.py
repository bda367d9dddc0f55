from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, field_validator


MovementType = Literal[
    "Receipt",
    "Issue",
    "Adjustment",
    "Transfer In",
    "Transfer Out",
    "Production",
    "Consumption",
]


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


def _positive(v: Decimal) -> Decimal:
    if v <= 0:
        raise ValueError("quantity must be > 0")
    return v


class ReceiveStockRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal
    supplier_id: Optional[int] = None
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal) -> Decimal:
        return _positive(v)

    @field_validator("reference")
    @classmethod
    def _reference_strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class IssueStockRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal
    customer_id: Optional[int] = None
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal) -> Decimal:
        return _positive(v)

    @field_validator("reference")
    @classmethod
    def _reference_strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class AdjustStockRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal  # signed; zero is allowed
    reference: Optional[str] = None

    @field_validator("reference")
    @classmethod
    def _reference_strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class TransferStockRequest(BaseModel):
    item_id: int
    from_location_id: int
    to_location_id: int
    quantity: Decimal
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal) -> Decimal:
        return _positive(v)

    @field_validator("reference")
    @classmethod
    def _reference_strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ProduceItemRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: Decimal) -> Decimal:
        return _positive(v)

    @field_validator("reference")
    @classmethod
    def _reference_strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class StockMovementOut(BaseModel):
    id: int
    item_id: int
    location_id: int
    movement_type: MovementType
    quantity: Decimal
    date: datetime
    reference: Optional[str] = None
    correlation_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class StockLevelOut(BaseModel):
    item_id: int
    item_name: str
    item_sku: str
    location_id: int
    location_name: str
    current_quantity: Decimal
    reorder_level: Decimal
    unit_of_measure: str
    below_reorder: bool

    class Config:
        from_attributes = True


class CurrentQuantityOut(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal
