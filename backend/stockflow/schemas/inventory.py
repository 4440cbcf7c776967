"""
Inventory Pydantic Schemas
"""
from pydantic import BaseModel
from typing import Any, Optional
from decimal import Decimal


class StockLevelResponse(BaseModel):
    """Stock view of one material"""
    material_id: int
    sku: str
    name: str
    unit: Optional[str] = None
    min_stock: Decimal = Decimal("0")
    reorder_point: Decimal = Decimal("0")
    on_hand: Decimal
    reserved_total: Decimal
    available: Decimal
    stale_reservations: int = 0


class StockAdjustmentCreate(BaseModel):
    """Set a material's on-hand quantity to a counted value"""
    material_id: Any = None
    on_hand: Any = None
    reason: Optional[str] = None
