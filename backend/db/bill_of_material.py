from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint

from .database import Base, utcnow


class BillOfMaterial(Base):
    """One BOM edge: `quantity` units of the component are consumed per unit of the parent."""
    __tablename__ = "bill_of_materials"
    __table_args__ = (
        UniqueConstraint("parent_item_id", "component_item_id", name="ux_bill_of_materials_parent_component"),
        CheckConstraint("parent_item_id <> component_item_id", name="ck_bill_of_materials_no_self_reference"),
        CheckConstraint("quantity > 0", name="ck_bill_of_materials_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    component_item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    quantity = Column(Numeric(10, 4), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
