from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, event

from core.exceptions import ImmutableMovementError
from ..database import Base, utcnow

RECEIPT = "Receipt"
ISSUE = "Issue"
ADJUSTMENT = "Adjustment"
TRANSFER_IN = "Transfer In"
TRANSFER_OUT = "Transfer Out"
PRODUCTION = "Production"
CONSUMPTION = "Consumption"

MOVEMENT_TYPES = (RECEIPT, ISSUE, ADJUSTMENT, TRANSFER_IN, TRANSFER_OUT, PRODUCTION, CONSUMPTION)


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint(
            "movement_type IN ({})".format(", ".join(f"'{t}'" for t in MOVEMENT_TYPES)),
            name="ck_stock_movements_movement_type",
        ),
        Index("ix_stock_movements_item_location", "item_id", "location_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)

    movement_type = Column(String(20), nullable=False, index=True)
    # Positive adds stock at the location, negative removes it.
    quantity = Column(Numeric(20, 8), nullable=False)

    date = Column(DateTime, nullable=False, index=True)
    reference = Column(Text, nullable=True)
    # Shared by every movement written by one operation (transfer pair, production set).
    correlation_id = Column(String(36), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)


@event.listens_for(StockMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ImmutableMovementError(target.id, "updated")


@event.listens_for(StockMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    raise ImmutableMovementError(target.id, "deleted")
