"""
Allocation Engine

Distributes newly available stock of one material across outstanding order
lines, oldest order first.

For every line visited (FIFO by order created_at, order id, item id):

    needed        = max(0, requested - reserved)
    alloc         = min(remaining, needed)
    reserved     += alloc
    qty_to_produce = 0 for BUY lines, else max(0, requested - reserved)

The order's stock reservation for the material is rewritten with its total
reserved quantity, and its production shortage (sum of qty_to_produce over
its PRODUCE lines) is pushed to the production task tracker. The pass runs
under the material lock so two passes for the same material serialize.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from stockflow.core.config import settings
from stockflow.core.status_config import ShortageAction
from stockflow.logging_config import get_logger
from stockflow.models.order import OrderItem
from stockflow.models.reservation import StockReservation
from stockflow.services import notification_service
from stockflow.services.amounts import ZERO, clamp_non_negative, to_decimal
from stockflow.services.demand_queries import order_material_totals, outstanding_lines_fifo
from stockflow.services.production_tasks import sync_production_shortage
from stockflow.services.stock_ledger import lock_material

logger = get_logger(__name__)


@dataclass(frozen=True)
class LineAllocation:
    """Stock given to one order line during an allocation pass"""
    order_id: int
    item_id: int
    allocated: Decimal
    qty_reserved_from_stock: Decimal
    qty_to_produce: Decimal


def reservation_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) + timedelta(minutes=settings.RESERVATION_TTL_MINUTES)


def upsert_stock_reservation(
    db: Session,
    order_id: int,
    material_id: int,
    qty: Decimal,
    user_id: Optional[str] = None,
) -> StockReservation:
    """Set the (order, material) stock reservation to ``qty`` with a fresh TTL."""
    now = datetime.utcnow()
    reservation = (
        db.query(StockReservation)
        .filter(
            StockReservation.order_id == order_id,
            StockReservation.material_id == material_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    if reservation is None:
        reservation = StockReservation(
            order_id=order_id,
            material_id=material_id,
            created_at=now,
        )
        db.add(reservation)
    reservation.qty = qty
    reservation.user_id = user_id
    reservation.expires_at = reservation_expiry(now)
    reservation.updated_at = now
    db.flush()
    return reservation


def line_shortage(line: OrderItem, reserved: Decimal) -> Decimal:
    """Quantity of a line routed to production once ``reserved`` is covered by stock."""
    if (line.shortage_action or ShortageAction.PRODUCE.value).upper() == ShortageAction.BUY.value:
        return ZERO
    return clamp_non_negative(to_decimal(line.quantity) - reserved)


def allocate(
    db: Session,
    material_id: int,
    quantity_available: Any,
    actor_id: Optional[str] = None,
) -> List[LineAllocation]:
    """
    Hand ``quantity_available`` units of a material to waiting order lines.

    Only orders that are not DRAFT, CANCELLED or DONE and not trashed take
    part. A non-positive quantity does nothing. Units left over once every
    line is covered stay unreserved on hand.

    Does not commit; runs inside the caller's transaction.

    Returns:
        The per-line allocations made, in the order they were made
    """
    remaining = to_decimal(quantity_available)
    if remaining <= ZERO:
        return []

    lock_material(db, material_id)

    allocations: List[LineAllocation] = []
    allocated_by_order = OrderedDict()

    for line in outstanding_lines_fifo(db, material_id):
        if remaining <= ZERO:
            break

        reserved = to_decimal(line.qty_reserved_from_stock)
        needed = clamp_non_negative(to_decimal(line.quantity) - reserved)
        if needed <= ZERO:
            continue

        alloc = min(remaining, needed)
        new_reserved = reserved + alloc
        line.qty_reserved_from_stock = new_reserved
        line.qty_to_produce = line_shortage(line, new_reserved)
        db.flush()

        order_reserved, order_shortage = order_material_totals(db, line.order_id, material_id)
        upsert_stock_reservation(db, line.order_id, material_id, order_reserved, actor_id)
        sync_production_shortage(db, line.order_id, material_id, order_shortage)

        remaining -= alloc
        allocations.append(
            LineAllocation(
                order_id=line.order_id,
                item_id=line.id,
                allocated=alloc,
                qty_reserved_from_stock=new_reserved,
                qty_to_produce=to_decimal(line.qty_to_produce),
            )
        )
        allocated_by_order[line.order_id] = allocated_by_order.get(line.order_id, ZERO) + alloc

    for order_id, qty in allocated_by_order.items():
        notification_service.notify_allocation_available(db, order_id, material_id, qty)

    logger.info(
        "Allocation pass finished",
        extra={
            "material_id": material_id,
            "quantity_available": to_decimal(quantity_available),
            "allocated": sum((a.allocated for a in allocations), ZERO),
            "unallocated": remaining,
            "lines": len(allocations),
            "actor_id": actor_id,
        },
    )
    return allocations
