"""
Inventory models

- StockBalance: authoritative on-hand quantity, one row per material
- InventoryAdjustment: audit trail of manual stock corrections
- InventoryReceipt / InventoryReceiptItem: draft batches of incoming stock
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from stockflow.db.base import Base


class StockBalance(Base):
    """Stock Balance - on-hand quantity for a material (never negative)"""
    __tablename__ = "stock_balances"
    __table_args__ = (
        CheckConstraint("on_hand >= 0", name="ck_stock_balances_on_hand_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), unique=True, nullable=False, index=True)
    on_hand = Column(Numeric(18, 4), nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    material = relationship("Material", back_populates="stock_balance")

    def __repr__(self):
        return f"<StockBalance material={self.material_id}: {self.on_hand}>"


class InventoryAdjustment(Base):
    """Inventory Adjustment - before/after record of a manual correction"""
    __tablename__ = "inventory_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    qty_before = Column(Numeric(18, 4), nullable=False)
    qty_after = Column(Numeric(18, 4), nullable=False)
    adjustment_qty = Column(Numeric(18, 4), nullable=False)  # qty_after - qty_before

    reason = Column(Text, nullable=False)
    actor = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    material = relationship("Material")

    def __repr__(self):
        return f"<InventoryAdjustment material={self.material_id}: {self.adjustment_qty:+}>"


class InventoryReceipt(Base):
    """
    Inventory Receipt - a batch of incoming quantity.

    Lifecycle: DRAFT → POSTED (one way)
    Type: GENERAL (replenishes stock) or PRODUCTION (replenishes an order;
    source_ref points at the order as "O-<id>" or its order number)
    """
    __tablename__ = "inventory_receipts"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    type = Column(String(20), nullable=False, default="GENERAL")
    source_ref = Column(String(100), nullable=True)

    posted_at = Column(DateTime, nullable=True)
    posted_by = Column(String(100), nullable=True)
    auto_allocated = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    items = relationship(
        "InventoryReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="InventoryReceiptItem.id",
    )

    def __repr__(self):
        return f"<InventoryReceipt {self.id} {self.type} - {self.status}>"


class InventoryReceiptItem(Base):
    """Inventory Receipt Item - incoming quantity for one material"""
    __tablename__ = "inventory_receipt_items"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("inventory_receipts.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    qty = Column(Numeric(18, 4), nullable=False)

    receipt = relationship("InventoryReceipt", back_populates="items")
    material = relationship("Material")

    def __repr__(self):
        return f"<InventoryReceiptItem receipt={self.receipt_id} material={self.material_id}: {self.qty}>"
