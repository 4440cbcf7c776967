"""
Production Task Tracker

One ProductionTask per (order, material) shortage routed to production.

Tasks are derived data. The allocation engine and the order submission
processor size them through ``sync_production_shortage``; people working
the production board only move them forward with ``start_task`` and
``complete_task``.

Status rules:
- PENDING → IN_PROGRESS → DONE
- DONE is terminal: a resize never puts a finished task back to PENDING
- start on an IN_PROGRESS or DONE task leaves it as it is
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session, joinedload

from stockflow.core.status_config import (
    OrderStatus,
    ProductionTaskAction,
    ProductionTaskStatus,
)
from stockflow.exceptions import InvalidActionError, NotFoundError
from stockflow.logging_config import get_logger
from stockflow.models.order import Order
from stockflow.models.production import ProductionTask
from stockflow.models.reservation import ProductionReservation
from stockflow.services import notification_service
from stockflow.services.amounts import ZERO, to_decimal

logger = get_logger(__name__)


def get_task(db: Session, task_id: int, *, for_update: bool = False) -> ProductionTask:
    """
    Get a production task by id.

    Raises:
        NotFoundError: task does not exist
    """
    query = db.query(ProductionTask).filter(ProductionTask.id == task_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    task = query.first()
    if task is None:
        raise NotFoundError("Production task", task_id)
    return task


def find_task(db: Session, order_id: int, material_id: int) -> Optional[ProductionTask]:
    return (
        db.query(ProductionTask)
        .filter(
            ProductionTask.order_id == order_id,
            ProductionTask.material_id == material_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )


def upsert_task(db: Session, order_id: int, material_id: int, qty: Any) -> ProductionTask:
    """
    Create a PENDING task for (order, material) or resize the existing one.

    An existing task goes back to PENDING with the new quantity unless it
    is DONE, in which case only the quantity changes.
    """
    qty = to_decimal(qty)
    now = datetime.utcnow()
    task = find_task(db, order_id, material_id)
    if task is None:
        task = ProductionTask(
            order_id=order_id,
            material_id=material_id,
            qty_to_produce=qty,
            status=ProductionTaskStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        db.add(task)
        db.flush()
        logger.info(
            "Production task created",
            extra={"task_id": task.id, "order_id": order_id, "material_id": material_id, "qty": qty},
        )
        return task

    task.qty_to_produce = qty
    task.updated_at = now
    if task.status != ProductionTaskStatus.DONE.value:
        task.status = ProductionTaskStatus.PENDING.value
    db.flush()
    logger.info(
        "Production task resized",
        extra={"task_id": task.id, "order_id": order_id, "material_id": material_id, "qty": qty, "status": task.status},
    )
    return task


def delete_task(db: Session, order_id: int, material_id: int) -> bool:
    """Delete the (order, material) task. Returns True when a row was removed."""
    deleted = (
        db.query(ProductionTask)
        .filter(
            ProductionTask.order_id == order_id,
            ProductionTask.material_id == material_id,
        )
        .delete(synchronize_session="fetch")
    )
    if deleted:
        logger.info(
            "Production task deleted",
            extra={"order_id": order_id, "material_id": material_id},
        )
    return bool(deleted)


def upsert_production_reservation(db: Session, order_id: int, material_id: int, qty: Decimal) -> ProductionReservation:
    reservation = (
        db.query(ProductionReservation)
        .filter(
            ProductionReservation.order_id == order_id,
            ProductionReservation.material_id == material_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    now = datetime.utcnow()
    if reservation is None:
        reservation = ProductionReservation(
            order_id=order_id,
            material_id=material_id,
            qty=qty,
            created_at=now,
            updated_at=now,
        )
        db.add(reservation)
    else:
        reservation.qty = qty
        reservation.updated_at = now
    db.flush()
    return reservation


def delete_production_reservation(db: Session, order_id: int, material_id: int) -> bool:
    deleted = (
        db.query(ProductionReservation)
        .filter(
            ProductionReservation.order_id == order_id,
            ProductionReservation.material_id == material_id,
        )
        .delete(synchronize_session="fetch")
    )
    return bool(deleted)


def sync_production_shortage(
    db: Session, order_id: int, material_id: int, shortage: Any
) -> Optional[ProductionTask]:
    """
    Make the task and production reservation of (order, material) match ``shortage``.

    A shortage of zero removes both; a positive shortage upserts both.

    Returns:
        The task, or None when it was removed
    """
    shortage = to_decimal(shortage)
    if shortage <= ZERO:
        delete_task(db, order_id, material_id)
        delete_production_reservation(db, order_id, material_id)
        return None

    task = upsert_task(db, order_id, material_id, shortage)
    upsert_production_reservation(db, order_id, material_id, shortage)
    return task


def start_task(db: Session, task_id: int) -> ProductionTask:
    """
    Start a task: PENDING → IN_PROGRESS.

    started_at is set the first time only. Starting an IN_PROGRESS or DONE
    task changes nothing.
    """
    task = get_task(db, task_id, for_update=True)
    if task.status != ProductionTaskStatus.PENDING.value:
        logger.debug(
            "Start ignored for production task",
            extra={"task_id": task.id, "status": task.status},
        )
        return task

    now = datetime.utcnow()
    task.status = ProductionTaskStatus.IN_PROGRESS.value
    if task.started_at is None:
        task.started_at = now
    task.updated_at = now
    db.flush()

    logger.info("Production task started", extra={"task_id": task.id, "order_id": task.order_id})
    notification_service.notify_order_stage(
        db, task.order_id, "production started", f"Task PT-{task.id} for material M-{task.material_id} started"
    )
    return task


def complete_task(db: Session, task_id: int) -> ProductionTask:
    """Complete a task: PENDING or IN_PROGRESS → DONE. Completing a DONE task changes nothing."""
    task = get_task(db, task_id, for_update=True)
    if task.status == ProductionTaskStatus.DONE.value:
        return task

    now = datetime.utcnow()
    task.status = ProductionTaskStatus.DONE.value
    task.completed_at = now
    task.updated_at = now
    db.flush()

    logger.info("Production task completed", extra={"task_id": task.id, "order_id": task.order_id})
    notification_service.notify_order_stage(
        db, task.order_id, "production done", f"Task PT-{task.id} for material M-{task.material_id} completed"
    )
    return task


TASK_ACTIONS = {
    ProductionTaskAction.START.value: start_task,
    ProductionTaskAction.COMPLETE.value: complete_task,
}


def mutate_task(db: Session, task_id: int, action: Any) -> ProductionTask:
    """
    Apply a board action ("start" or "complete") to a task.

    Raises:
        InvalidActionError: unknown action
        NotFoundError: task does not exist
    """
    handler = TASK_ACTIONS.get(str(action).strip().lower()) if action is not None else None
    if handler is None:
        raise InvalidActionError(action, allowed=sorted(TASK_ACTIONS))
    return handler(db, task_id)


def list_active_tasks(db: Session) -> List[ProductionTask]:
    """Tasks of orders that are neither trashed nor CANCELLED/DONE, oldest first."""
    return (
        db.query(ProductionTask)
        .join(Order, Order.id == ProductionTask.order_id)
        .options(joinedload(ProductionTask.order), joinedload(ProductionTask.material))
        .filter(
            Order.trashed_at.is_(None),
            Order.status.notin_([OrderStatus.CANCELLED.value, OrderStatus.DONE.value]),
        )
        .order_by(ProductionTask.created_at.asc(), ProductionTask.id.asc())
        .all()
    )
