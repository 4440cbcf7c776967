"""
Order models

Orders and their line items carry the demand the allocation engine serves.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from stockflow.db.base import Base


class Order(Base):
    """
    Order - customer demand for one or more materials.

    Lifecycle: DRAFT → OPEN → IN_PICKING → DONE
    Alternative path: any non-terminal status → CANCELLED
    Soft delete: trashed_at set (status becomes CANCELLED, previous status
    kept in status_before_trash so untrashing can restore it)
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # YYYYMMDD + per-day sequence, e.g. 2025031403
    order_number = Column(String(20), unique=True, nullable=True, index=True)

    status = Column(String(20), nullable=False, default="OPEN", index=True)
    total = Column(Numeric(18, 4), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    trashed_at = Column(DateTime, nullable=True)
    status_before_trash = Column(String(20), nullable=True)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    production_tasks = relationship("ProductionTask", back_populates="order", cascade="all, delete-orphan")
    stock_reservations = relationship("StockReservation", back_populates="order", cascade="all, delete-orphan")
    production_reservations = relationship(
        "ProductionReservation", back_populates="order", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Order {self.order_number or self.id} - {self.status}>"

    @property
    def is_trashed(self) -> bool:
        return self.trashed_at is not None


class OrderItem(Base):
    """
    Order Item - requested quantity of one material.

    qty_reserved_from_stock: units already promised from on-hand stock
    qty_to_produce: shortage routed to production (always 0 for BUY lines)
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("qty_reserved_from_stock >= 0", name="ck_order_items_reserved_non_negative"),
        CheckConstraint("qty_reserved_from_stock <= quantity", name="ck_order_items_reserved_within_requested"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    quantity = Column(Numeric(18, 4), nullable=False)
    unit_price = Column(Numeric(18, 4), nullable=False, default=0)

    qty_reserved_from_stock = Column(Numeric(18, 4), nullable=False, default=0)
    qty_to_produce = Column(Numeric(18, 4), nullable=False, default=0)
    shortage_action = Column(String(10), nullable=False, default="PRODUCE")

    # Relationships
    order = relationship("Order", back_populates="items")
    material = relationship("Material")

    def __repr__(self):
        return f"<OrderItem O-{self.order_id}-{self.id} material={self.material_id}>"


class OrderSequence(Base):
    """Order Sequence - last order number issued for a calendar day"""
    __tablename__ = "order_sequences"

    id = Column(Integer, primary_key=True, index=True)
    day_key = Column(String(8), unique=True, nullable=False)  # YYYYMMDD
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<OrderSequence {self.day_key}: {self.last_value}>"
