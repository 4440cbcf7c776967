"""
Notification Service

Publishes notification rows for the delivery collaborator (inbox, email,
push; none of which live here).

Publishing is best effort: the row is written inside a savepoint and any
database failure is logged and rolled back to that savepoint, so a broken
notification never undoes the stock operation that triggered it.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockflow.logging_config import get_logger
from stockflow.models.notification import Notification

logger = get_logger(__name__)


class NotificationType(str, Enum):
    PRODUCTION_PENDING = "PRODUCTION_PENDING"
    ALLOCATION_AVAILABLE = "ALLOCATION_AVAILABLE"
    ORDER_STAGE = "ORDER_STAGE"


def publish(
    db: Session,
    type: str,
    title: str,
    message: Optional[str] = None,
    *,
    order_id: Optional[int] = None,
    material_id: Optional[int] = None,
    role_target: Optional[str] = None,
    user_target: Optional[str] = None,
    dedupe_key: Optional[str] = None,
) -> Optional[Notification]:
    """
    Record a notification.

    When ``dedupe_key`` matches an existing row, that row is refreshed
    (title, message, created_at, unread) instead of inserting a new one.

    Returns:
        The Notification, or None when publishing failed
    """
    type_value = type.value if isinstance(type, Enum) else type
    savepoint = db.begin_nested()
    try:
        notification = None
        if dedupe_key:
            notification = (
                db.query(Notification)
                .filter(Notification.dedupe_key == dedupe_key)
                .first()
            )
        if notification is None:
            notification = Notification(dedupe_key=dedupe_key)
            db.add(notification)

        notification.type = type_value
        notification.title = title
        notification.message = message
        notification.order_id = order_id
        notification.material_id = material_id
        notification.role_target = role_target
        notification.user_target = user_target
        notification.created_at = datetime.utcnow()
        notification.read_at = None

        db.flush()
        savepoint.commit()
        return notification
    except SQLAlchemyError as e:
        savepoint.rollback()
        logger.warning(
            "Failed to publish notification",
            extra={"type": type_value, "order_id": order_id, "material_id": material_id, "error": str(e)},
        )
        return None


def notify_production_pending(db: Session, order, material_id: int, qty) -> Optional[Notification]:
    """Production has work to do for an order's shortage."""
    label = order.order_number or order.id
    return publish(
        db,
        NotificationType.PRODUCTION_PENDING,
        title=f"Production needed for order {label}",
        message=f"Produce {qty} of material M-{material_id}",
        order_id=order.id,
        material_id=material_id,
        role_target="production",
        dedupe_key=f"production-pending:{order.id}:{material_id}",
    )


def notify_allocation_available(db: Session, order_id: int, material_id: int, qty) -> Optional[Notification]:
    """Stock from a receipt was reserved to an order."""
    return publish(
        db,
        NotificationType.ALLOCATION_AVAILABLE,
        title=f"Stock available for order O-{order_id}",
        message=f"{qty} of material M-{material_id} reserved from incoming stock",
        order_id=order_id,
        material_id=material_id,
        role_target="sales",
        dedupe_key=f"allocation-available:{order_id}:{material_id}",
    )


def notify_order_stage(db: Session, order_id: int, stage: str, detail: Optional[str] = None) -> Optional[Notification]:
    """An order (or one of its production tasks) changed stage."""
    return publish(
        db,
        NotificationType.ORDER_STAGE,
        title=f"Order O-{order_id}: {stage}",
        message=detail,
        order_id=order_id,
        role_target="sales",
        dedupe_key=f"order-stage:{order_id}",
    )
