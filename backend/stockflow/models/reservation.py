"""
Reservation models

StockReservation: quantity of on-hand stock promised to an order for a
material. expires_at is a soft TTL; the read side uses it to flag a
reservation as stale, nothing releases stock when it passes.

ProductionReservation: quantity of an order's shortage that is in flight
in production. Cleared when the shortage disappears or a production receipt
for the order is posted.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional

from stockflow.db.base import Base


class StockReservation(Base):
    """Stock Reservation - keyed by (order, material)"""
    __tablename__ = "stock_reservations"
    __table_args__ = (
        UniqueConstraint("order_id", "material_id", name="uq_stock_reservations_order_material"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=True)

    qty = Column(Numeric(18, 4), nullable=False)
    expires_at = Column(DateTime, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="stock_reservations")
    material = relationship("Material")

    def __repr__(self):
        return f"<StockReservation O-{self.order_id}/M-{self.material_id}: {self.qty}>"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the soft TTL has passed (advisory only)."""
        return self.expires_at <= (now or datetime.utcnow())


class ProductionReservation(Base):
    """Production Reservation - in-flight production keyed by (order, material)"""
    __tablename__ = "production_reservations"
    __table_args__ = (
        UniqueConstraint("order_id", "material_id", name="uq_production_reservations_order_material"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    qty = Column(Numeric(18, 4), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="production_reservations")

    def __repr__(self):
        return f"<ProductionReservation O-{self.order_id}/M-{self.material_id}: {self.qty}>"
