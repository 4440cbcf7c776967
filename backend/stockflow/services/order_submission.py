"""
Order Submission Processor

Validates a new order, creates it with its items in one transaction and
decides, per material, how much of the request stock can cover right now
and how much has to be produced.

Stock "available to the new order" is what is left on hand after the unmet
demand of every other active order is set aside (see AvailabilityQuery).
That quantity is reserved to the new order's lines, PRODUCE lines first,
and the rest of each PRODUCE line becomes the order's production shortage
for the material.

DRAFT orders are stored without touching stock: drafts do not compete for
inventory. Their shortage is planned when they are released to OPEN
(see order_lifecycle.change_order_status).
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockflow.core.status_config import (
    SUBMITTABLE_ORDER_STATUSES,
    OrderStatus,
    ShortageAction,
)
from stockflow.exceptions import ValidationError
from stockflow.logging_config import get_logger
from stockflow.models.order import Order, OrderItem
from stockflow.services import notification_service
from stockflow.services.allocation import line_shortage, upsert_stock_reservation
from stockflow.services.amounts import ZERO, clamp_non_negative, parse_decimal, to_decimal
from stockflow.services.demand_queries import AvailabilityQuery, order_material_totals
from stockflow.services.order_numbering import next_order_number
from stockflow.services.production_tasks import sync_production_shortage
from stockflow.services.stock_ledger import lock_material, resolve_material_id

logger = get_logger(__name__)

SHORTAGE_ACTIONS = {action.value for action in ShortageAction}


def _get(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def validate_items(db: Session, items: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Check every line and normalize it.

    Returns:
        List of dicts with material_id, quantity, unit_price, shortage_action

    Raises:
        ValidationError: one entry per bad field, keyed like ``items[0].quantity``
    """
    raw_items = list(items or [])
    errors: Dict[str, str] = {}
    normalized: List[Dict[str, Any]] = []

    if not raw_items:
        errors["items"] = "Order must contain at least one item"

    for idx, item in enumerate(raw_items):
        prefix = f"items[{idx}]"

        material_ref = _get(item, "material_id")
        material_id = resolve_material_id(db, material_ref)
        if material_id is None:
            if material_ref is None or str(material_ref).strip() == "":
                errors[f"{prefix}.material_id"] = "material_id is required"
            else:
                errors[f"{prefix}.material_id"] = f"Material '{material_ref}' not found"

        quantity = parse_decimal(_get(item, "quantity"))
        if quantity is None or quantity <= ZERO:
            errors[f"{prefix}.quantity"] = "Quantity must be greater than zero"

        unit_price = parse_decimal(_get(item, "unit_price"))
        if unit_price is None:
            if _get(item, "unit_price") in (None, ""):
                unit_price = ZERO
            else:
                errors[f"{prefix}.unit_price"] = "Unit price must be a number"
        elif unit_price < ZERO:
            errors[f"{prefix}.unit_price"] = "Unit price cannot be negative"

        action = _get(item, "shortage_action")
        action = str(action).strip().upper() if action not in (None, "") else ShortageAction.PRODUCE.value
        if action not in SHORTAGE_ACTIONS:
            errors[f"{prefix}.shortage_action"] = "Shortage action must be PRODUCE or BUY"

        normalized.append({
            "material_id": material_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "shortage_action": action,
        })

    if errors:
        raise ValidationError("Invalid order", errors=errors)
    return normalized


def plan_material_shortage(
    db: Session,
    order: Order,
    material_id: int,
    actor_id: Optional[str] = None,
) -> Decimal:
    """
    Reserve available stock to the order's lines for one material and route
    the rest of its PRODUCE lines to production.

    Takes the material lock. Returns the production shortage.
    """
    lock_material(db, material_id)
    availability = AvailabilityQuery(material_id=material_id, order_id=order.id).run(db)

    lines = [line for line in order.items if line.material_id == material_id]
    produce_first = sorted(
        lines,
        key=lambda line: 0 if line.shortage_action == ShortageAction.PRODUCE.value else 1,
    )

    remaining = availability.available
    for line in produce_first:
        reserved = to_decimal(line.qty_reserved_from_stock)
        take = min(remaining, clamp_non_negative(to_decimal(line.quantity) - reserved))
        line.qty_reserved_from_stock = reserved + take
        line.qty_to_produce = line_shortage(line, reserved + take)
        remaining -= take
    db.flush()

    reserved, shortage = order_material_totals(db, order.id, material_id)
    if reserved > ZERO:
        upsert_stock_reservation(db, order.id, material_id, reserved, actor_id)

    task = sync_production_shortage(db, order.id, material_id, shortage)
    if task is not None:
        notification_service.notify_production_pending(db, order, material_id, shortage)

    logger.info(
        "Order shortage planned",
        extra={
            "order_id": order.id,
            "material_id": material_id,
            "on_hand": availability.on_hand,
            "available": availability.available,
            "reserved": reserved,
            "to_produce": shortage,
        },
    )
    return shortage


def plan_order_shortage(db: Session, order: Order, actor_id: Optional[str] = None) -> None:
    """Plan every distinct material of the order, in ascending material id."""
    for material_id in sorted({line.material_id for line in order.items}):
        plan_material_shortage(db, order, material_id, actor_id)


def submit_order(
    db: Session,
    items: Optional[Iterable[Any]],
    status: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> Order:
    """
    Create an order with its items.

    Nothing is written when any line is invalid. Does not commit; runs
    inside the caller's transaction.

    Args:
        db: Database session
        items: Lines with material_id, quantity, unit_price, shortage_action
        status: DRAFT or OPEN (default OPEN)
        actor_id: User submitting the order

    Returns:
        The persisted Order with its items

    Raises:
        ValidationError: per-field error map
        NotFoundError: a material vanished between validation and locking
    """
    status_value = str(status).strip().upper() if status not in (None, "") else OrderStatus.OPEN.value
    try:
        lines = validate_items(db, items)
    except ValidationError as e:
        if status_value not in SUBMITTABLE_ORDER_STATUSES:
            e.errors["status"] = "Status must be DRAFT or OPEN"
        raise
    if status_value not in SUBMITTABLE_ORDER_STATUSES:
        raise ValidationError("Invalid order", errors={"status": "Status must be DRAFT or OPEN"})

    total = sum((line["quantity"] * line["unit_price"] for line in lines), ZERO)
    now = datetime.utcnow()

    order = Order(
        status=status_value,
        total=total,
        created_at=now,
        updated_at=now,
    )
    for line in lines:
        order.items.append(
            OrderItem(
                material_id=line["material_id"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                qty_reserved_from_stock=ZERO,
                qty_to_produce=ZERO,
                shortage_action=line["shortage_action"],
            )
        )
    db.add(order)
    db.flush()

    order.order_number = next_order_number(db, now)

    if status_value == OrderStatus.DRAFT.value:
        for item in order.items:
            item.qty_to_produce = line_shortage(item, ZERO)
    else:
        plan_order_shortage(db, order, actor_id)
    db.flush()

    logger.info(
        "Order submitted",
        extra={
            "order_id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "total": total,
            "materials": len({line["material_id"] for line in lines}),
            "actor_id": actor_id,
        },
    )
    return order
