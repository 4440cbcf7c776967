"""
Production Board API Endpoints

Lists open production tasks and moves them through
PENDING -> IN_PROGRESS -> DONE.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockflow.api.v1.deps import get_db, path_id
from stockflow.db.transaction import run_in_transaction
from stockflow.exceptions import ValidationError
from stockflow.models.production import ProductionTask
from stockflow.schemas.production import (
    ProductionTaskMutation,
    ProductionTaskResponse,
    ProductionTaskUpsert,
)
from stockflow.services import cache_service
from stockflow.services.amounts import ZERO, parse_decimal, parse_entity_id
from stockflow.services.order_lifecycle import get_order
from stockflow.services.production_tasks import list_active_tasks, mutate_task, sync_production_shortage
from stockflow.services.stock_ledger import lock_material

router = APIRouter()


def build_task_response(task: ProductionTask) -> ProductionTaskResponse:
    """Build response from task model."""
    return ProductionTaskResponse(
        id=task.id,
        order_id=task.order_id,
        material_id=task.material_id,
        order_number=(task.order.order_number if task.order else None) or f"O-{task.order_id}",
        material_name=(task.material.name if task.material else None) or f"M-{task.material_id}",
        qty_to_produce=task.qty_to_produce,
        status=task.status,
        started_at=task.started_at,
        completed_at=task.completed_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


@router.get("", response_model=List[ProductionTaskResponse])
def get_production_tasks(db: Session = Depends(get_db)):
    """Tasks of live orders (not trashed, cancelled or done), oldest first."""
    return [build_task_response(task) for task in list_active_tasks(db)]


@router.post("", response_model=ProductionTaskResponse, status_code=status.HTTP_201_CREATED)
def put_production_task(payload: ProductionTaskUpsert, db: Session = Depends(get_db)):
    """
    Create or resize the task of an (order, material) pair by hand.

    A DONE task keeps its status; any other task goes back to PENDING. The
    production reservation of the pair follows the new quantity.
    """
    order_id = parse_entity_id(payload.order_id)
    material_id = parse_entity_id(payload.material_id)
    qty = parse_decimal(payload.qty_to_produce)

    errors = {}
    if order_id is None:
        errors["order_id"] = "order_id is required"
    if material_id is None:
        errors["material_id"] = "material_id is required"
    if qty is None or qty <= ZERO:
        errors["qty_to_produce"] = "qty_to_produce must be greater than zero"
    if errors:
        raise ValidationError("Invalid production task", errors=errors)

    def work(session: Session) -> ProductionTask:
        get_order(session, order_id)
        lock_material(session, material_id)
        return sync_production_shortage(session, order_id, material_id, qty)

    task = run_in_transaction(db, work, operation="upsert_production_task")
    cache_service.invalidate(cache_service.PRODUCTION)
    return build_task_response(task)


@router.patch("/{task_id}", response_model=ProductionTaskResponse)
def update_production_task(
    task_id: str,
    payload: ProductionTaskMutation,
    db: Session = Depends(get_db),
):
    """Apply a board action: "start" or "complete"."""
    parsed_id = path_id("Production task", task_id)
    task = run_in_transaction(
        db,
        lambda session: mutate_task(session, parsed_id, payload.action),
        operation="mutate_production_task",
    )
    cache_service.invalidate(cache_service.PRODUCTION, cache_service.ORDERS)
    return build_task_response(task)
