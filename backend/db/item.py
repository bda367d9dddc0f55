from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text

from .database import Base, utcnow


class Item(Base):
    """Item master record. Owned by the catalog; the ledger only reads it."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True, index=True)
    sku = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    unit_of_measure = Column(String, nullable=False)
    is_manufactured = Column(Boolean, nullable=False, default=False)

    reorder_level = Column(Numeric(10, 2), nullable=False, default=0)
    cost_price = Column(Numeric(10, 2), nullable=False, default=0)
    sale_price = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
