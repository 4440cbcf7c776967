"""
Order API Endpoints

Submission, listing and lifecycle (status, trash, delete) of orders.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api.v1.deps import get_actor_id, get_db, path_id
from stockflow.db.transaction import run_in_transaction
from stockflow.logging_config import get_logger
from stockflow.models.order import Order
from stockflow.schemas.common import OkResponse
from stockflow.schemas.order import (
    OrderCreate,
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderTrashUpdate,
)
from stockflow.services import cache_service
from stockflow.services.order_lifecycle import (
    change_order_status,
    delete_order,
    get_order,
    list_orders,
    set_order_trashed,
)
from stockflow.services.order_submission import submit_order

logger = get_logger(__name__)

router = APIRouter()


def build_order_response(order: Order) -> OrderResponse:
    """Build response from order model."""
    items = []
    for item in order.items:
        items.append(
            OrderItemResponse(
                id=item.id,
                material_id=item.material_id,
                material_sku=item.material.sku if item.material else None,
                material_name=item.material.name if item.material else None,
                quantity=item.quantity,
                unit_price=item.unit_price,
                qty_reserved_from_stock=item.qty_reserved_from_stock,
                qty_to_produce=item.qty_to_produce,
                shortage_action=item.shortage_action,
            )
        )
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        total=order.total,
        created_at=order.created_at,
        updated_at=order.updated_at,
        trashed_at=order.trashed_at,
        items=items,
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Submit an order.

    Lines are validated together; any bad line rejects the whole order
    with a per-field error map. Stock available to the order is reserved
    and the PRODUCE shortage becomes production tasks.
    """
    items = [item.model_dump() for item in payload.items]
    order = run_in_transaction(
        db,
        lambda session: submit_order(session, items, status=payload.status, actor_id=actor_id),
        operation="submit_order",
    )
    cache_service.invalidate(cache_service.ORDERS, cache_service.STOCK, cache_service.PRODUCTION)
    return build_order_response(order)


@router.get("", response_model=List[OrderResponse])
def get_orders(
    include_trashed: bool = Query(False, description="Include trashed orders"),
    db: Session = Depends(get_db),
):
    """List orders, newest first."""
    return [build_order_response(order) for order in list_orders(db, include_trashed=include_trashed)]


@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(order_id: str, db: Session = Depends(get_db)):
    """Get one order with its lines."""
    return build_order_response(get_order(db, path_id("Order", order_id)))


@router.patch("/{order_id}", response_model=OkResponse)
def update_order_trash(
    order_id: str,
    payload: OrderTrashUpdate,
    db: Session = Depends(get_db),
):
    """Trash (cancel, release stock, drop production work) or restore an order."""
    parsed_id = path_id("Order", order_id)
    run_in_transaction(
        db,
        lambda session: set_order_trashed(session, parsed_id, payload.trashed),
        operation="set_order_trashed",
    )
    cache_service.invalidate(cache_service.ORDERS, cache_service.STOCK, cache_service.PRODUCTION)
    return OkResponse()


@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """Move an order to another status."""
    parsed_id = path_id("Order", order_id)
    order = run_in_transaction(
        db,
        lambda session: change_order_status(session, parsed_id, payload.status, actor_id=actor_id),
        operation="change_order_status",
    )
    cache_service.invalidate(cache_service.ORDERS, cache_service.STOCK, cache_service.PRODUCTION)
    return build_order_response(order)


@router.delete("/{order_id}", response_model=OkResponse)
def remove_order(order_id: str, db: Session = Depends(get_db)):
    """Delete an order for good, with its lines, tasks and reservations."""
    parsed_id = path_id("Order", order_id)
    run_in_transaction(db, lambda session: delete_order(session, parsed_id), operation="delete_order")
    cache_service.invalidate(cache_service.ORDERS, cache_service.STOCK, cache_service.PRODUCTION)
    return OkResponse()
