"""
Order lifecycle

Status changes, soft delete (trash / untrash) and hard delete of orders.

Cancelling or trashing an order gives its stock back: stock reservations are
deleted and line reservations drop to zero, so the material is available to
other orders again. Production tasks and production reservations are deleted
too. Untrashing brings back the status the order had before it was trashed,
but neither its reservations nor its tasks.
"""
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session, selectinload

from stockflow.core.status_config import (
    OrderStatus,
    get_allowed_order_transitions,
    is_valid_order_transition,
)
from stockflow.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from stockflow.logging_config import get_logger
from stockflow.models.order import Order
from stockflow.models.production import ProductionTask
from stockflow.models.reservation import ProductionReservation, StockReservation
from stockflow.services import notification_service
from stockflow.services.allocation import line_shortage
from stockflow.services.amounts import ZERO
from stockflow.services.order_submission import plan_order_shortage

logger = get_logger(__name__)

ORDER_STATUSES = {s.value for s in OrderStatus}


def get_order(db: Session, order_id: int, *, for_update: bool = False) -> Order:
    """
    Get an order by id.

    Raises:
        NotFoundError: order does not exist
    """
    query = db.query(Order).filter(Order.id == order_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    order = query.first()
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


def list_orders(db: Session, include_trashed: bool = False) -> List[Order]:
    """Orders with their items, newest first."""
    query = db.query(Order).options(selectinload(Order.items))
    if not include_trashed:
        query = query.filter(Order.trashed_at.is_(None))
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def _drop_production_work(db: Session, order_id: int) -> int:
    tasks = (
        db.query(ProductionTask)
        .filter(ProductionTask.order_id == order_id)
        .delete(synchronize_session="fetch")
    )
    db.query(ProductionReservation).filter(
        ProductionReservation.order_id == order_id
    ).delete(synchronize_session="fetch")
    return tasks


def _release_order_stock(db: Session, order: Order) -> int:
    """Delete the order's stock reservations and reset its lines to unreserved."""
    released = (
        db.query(StockReservation)
        .filter(StockReservation.order_id == order.id)
        .delete(synchronize_session="fetch")
    )
    for item in order.items:
        item.qty_reserved_from_stock = ZERO
        item.qty_to_produce = line_shortage(item, ZERO)
    db.flush()
    return released


def _withdraw_order(db: Session, order: Order) -> int:
    _release_order_stock(db, order)
    return _drop_production_work(db, order.id)


def set_order_trashed(db: Session, order_id: int, trashed: bool) -> Order:
    """
    Move an order to or out of the trash.

    Trashing an already trashed order, or untrashing one that is not
    trashed, changes nothing.
    """
    order = get_order(db, order_id, for_update=True)
    now = datetime.utcnow()

    if trashed:
        if order.trashed_at is not None:
            return order
        order.status_before_trash = order.status
        order.status = OrderStatus.CANCELLED.value
        order.trashed_at = now
        order.updated_at = now
        removed = _withdraw_order(db, order)
        db.flush()
        logger.info(
            "Order trashed",
            extra={"order_id": order.id, "previous_status": order.status_before_trash, "tasks_removed": removed},
        )
        return order

    if order.trashed_at is None:
        return order
    restored = order.status_before_trash or OrderStatus.OPEN.value
    order.status = restored
    order.status_before_trash = None
    order.trashed_at = None
    order.updated_at = now
    db.flush()
    logger.info("Order restored from trash", extra={"order_id": order.id, "status": restored})
    return order


def change_order_status(
    db: Session,
    order_id: int,
    new_status: Any,
    actor_id: Optional[str] = None,
) -> Order:
    """
    Move an order along DRAFT → OPEN → IN_PICKING → DONE (or to CANCELLED).

    Releasing a DRAFT order to OPEN plans its stock and production the same
    way a submission does. Cancelling releases its stock reservations and
    drops its production work.

    Raises:
        ValidationError: unknown status value
        InvalidTransitionError: transition not allowed from the current status
        NotFoundError: order does not exist
    """
    status_value = str(new_status).strip().upper() if new_status not in (None, "") else ""
    if status_value not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'",
            errors={"status": f"Status must be one of: {', '.join(sorted(ORDER_STATUSES))}"},
        )

    order = get_order(db, order_id, for_update=True)
    current = order.status
    if current == status_value:
        return order

    if order.trashed_at is not None or not is_valid_order_transition(current, status_value):
        raise InvalidTransitionError(
            "order",
            current_state=current,
            requested_state=status_value,
            allowed_states=[] if order.trashed_at is not None else get_allowed_order_transitions(current),
        )

    order.status = status_value
    order.updated_at = datetime.utcnow()
    db.flush()

    if current == OrderStatus.DRAFT.value and status_value == OrderStatus.OPEN.value:
        plan_order_shortage(db, order, actor_id)
    elif status_value == OrderStatus.CANCELLED.value:
        _withdraw_order(db, order)

    logger.info(
        "Order status changed",
        extra={"order_id": order.id, "from_status": current, "to_status": status_value, "actor_id": actor_id},
    )
    notification_service.notify_order_stage(db, order.id, status_value, f"Order moved from {current} to {status_value}")
    return order


def delete_order(db: Session, order_id: int) -> None:
    """Delete an order with its items, tasks and reservations."""
    order = get_order(db, order_id, for_update=True)
    db.delete(order)
    db.flush()
    logger.info("Order deleted", extra={"order_id": order_id})
