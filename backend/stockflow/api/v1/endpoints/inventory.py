"""
Inventory API Endpoints

Stock levels per material and manual on-hand corrections.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.api.v1.deps import get_actor_id, get_db
from stockflow.db.transaction import run_in_transaction
from stockflow.schemas.common import OkResponse
from stockflow.schemas.inventory import StockAdjustmentCreate, StockLevelResponse
from stockflow.services import cache_service
from stockflow.services.stock_ledger import adjust_stock, stock_snapshot

router = APIRouter()


@router.get("", response_model=List[StockLevelResponse])
def get_stock_levels(db: Session = Depends(get_db)):
    """On hand, reserved and available quantity of every material."""
    return [StockLevelResponse(**row) for row in stock_snapshot(db)]


@router.post("/adjustments", response_model=OkResponse)
def create_adjustment(
    payload: StockAdjustmentCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """Set a material's on-hand quantity to a counted value (audited)."""
    run_in_transaction(
        db,
        lambda session: adjust_stock(
            session, payload.material_id, payload.on_hand, payload.reason, actor=actor_id
        ),
        operation="adjust_stock",
    )
    cache_service.invalidate(cache_service.STOCK)
    return OkResponse()
