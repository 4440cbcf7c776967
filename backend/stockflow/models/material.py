"""
Material model

Catalog entries are maintained elsewhere; the allocation core only reads
them and uses the row as the per-material lock.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from stockflow.db.base import Base


class Material(Base):
    """Material - a stockable item that orders request"""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(20), nullable=False, default="UN")

    # Planning thresholds (informational for the read side)
    min_stock = Column(Numeric(18, 4), nullable=False, default=0)
    reorder_point = Column(Numeric(18, 4), nullable=False, default=0)

    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    stock_balance = relationship("StockBalance", back_populates="material", uselist=False)

    def __repr__(self):
        return f"<Material {self.sku}: {self.name}>"
