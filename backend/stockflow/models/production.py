"""
Production models

A ProductionTask is the shortage of one material for one order that has to
be manufactured. It is derived data: the allocation engine and the order
submission processor create, resize and delete it.

Lifecycle: PENDING → IN_PROGRESS → DONE (DONE is terminal)
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from stockflow.db.base import Base


class ProductionTask(Base):
    """Production Task - one per (order, material) shortage"""
    __tablename__ = "production_tasks"
    __table_args__ = (
        UniqueConstraint("order_id", "material_id", name="uq_production_tasks_order_material"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    qty_to_produce = Column(Numeric(18, 4), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING", index=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="production_tasks")
    material = relationship("Material")

    def __repr__(self):
        return f"<ProductionTask PT-{self.id} O-{self.order_id}/M-{self.material_id} - {self.status}>"

    @property
    def is_done(self) -> bool:
        return self.status == "DONE"
