"""
Demand Queries

Read-side queries over outstanding order demand shared by the allocation
engine and the order submission processor.

The "stock available to a new order" rule lives in AvailabilityQuery so it
can be exercised on its own:

    available = max(0, on_hand - max(0, others_requested - others_routed))

Stock is first held for the unmet demand of every other active order (what
they requested minus what is already routed to production); only the rest
is available to the order being evaluated.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from stockflow.core.status_config import (
    INACTIVE_DEMAND_STATUSES,
    ProductionTaskStatus,
    ShortageAction,
)
from stockflow.models.order import Order, OrderItem
from stockflow.models.production import ProductionTask
from stockflow.services.amounts import clamp_non_negative, to_decimal
from stockflow.services.stock_ledger import get_on_hand


def active_order_clause():
    """Orders that still compete for stock: not trashed, not draft/cancelled/done."""
    return and_(
        Order.trashed_at.is_(None),
        Order.status.notin_(INACTIVE_DEMAND_STATUSES),
    )


def outstanding_lines_fifo(db: Session, material_id: int) -> List[OrderItem]:
    """
    Order lines for a material belonging to active orders, oldest order first.

    Ordering: order created_at, then order id, then item id, so the visit
    order is fully deterministic for a given snapshot.
    """
    return (
        db.query(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            OrderItem.material_id == material_id,
            active_order_clause(),
        )
        .order_by(Order.created_at.asc(), Order.id.asc(), OrderItem.id.asc())
        .all()
    )


def order_material_totals(db: Session, order_id: int, material_id: int) -> Tuple[Decimal, Decimal]:
    """
    Totals across an order's lines for one material.

    Returns:
        (reserved_from_stock, produce_shortage) where produce_shortage only
        counts PRODUCE lines
    """
    reserved, to_produce = (
        db.query(
            func.coalesce(func.sum(OrderItem.qty_reserved_from_stock), 0),
            func.coalesce(
                func.sum(OrderItem.qty_to_produce).filter(
                    OrderItem.shortage_action == ShortageAction.PRODUCE.value
                ),
                0,
            ),
        )
        .filter(OrderItem.order_id == order_id, OrderItem.material_id == material_id)
        .one()
    )
    return to_decimal(reserved), to_decimal(to_produce)


@dataclass(frozen=True)
class Availability:
    """Result of an AvailabilityQuery"""
    material_id: int
    on_hand: Decimal
    others_requested: Decimal
    others_routed: Decimal

    @property
    def claimed_by_others(self) -> Decimal:
        return clamp_non_negative(self.others_requested - self.others_routed)

    @property
    def available(self) -> Decimal:
        return clamp_non_negative(self.on_hand - self.claimed_by_others)


@dataclass(frozen=True)
class AvailabilityQuery:
    """
    Stock of ``material_id`` available to ``order_id``.

    others_requested: quantity requested by every other active order
    others_routed: their production quantity not yet DONE
    """
    material_id: int
    order_id: Optional[int] = None

    def others_requested(self, db: Session) -> Decimal:
        query = (
            db.query(func.coalesce(func.sum(OrderItem.quantity), 0))
            .join(Order, Order.id == OrderItem.order_id)
            .filter(OrderItem.material_id == self.material_id, active_order_clause())
        )
        if self.order_id is not None:
            query = query.filter(OrderItem.order_id != self.order_id)
        return to_decimal(query.scalar())

    def others_routed(self, db: Session) -> Decimal:
        query = (
            db.query(func.coalesce(func.sum(ProductionTask.qty_to_produce), 0))
            .join(Order, Order.id == ProductionTask.order_id)
            .filter(
                ProductionTask.material_id == self.material_id,
                ProductionTask.status != ProductionTaskStatus.DONE.value,
                active_order_clause(),
            )
        )
        if self.order_id is not None:
            query = query.filter(ProductionTask.order_id != self.order_id)
        return to_decimal(query.scalar())

    def run(self, db: Session) -> Availability:
        return Availability(
            material_id=self.material_id,
            on_hand=get_on_hand(db, self.material_id),
            others_requested=self.others_requested(db),
            others_routed=self.others_routed(db),
        )

