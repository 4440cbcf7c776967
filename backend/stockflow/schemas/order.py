"""
Order Pydantic Schemas

Request fields are deliberately loose (Any): the submission processor
validates every line itself and reports all problems at once as a
field -> message map.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional, List
from datetime import datetime
from decimal import Decimal


# ============================================================================
# Requests
# ============================================================================

class OrderItemCreate(BaseModel):
    """One requested line: material id ("12", "M-12") or SKU/name"""
    material_id: Any = None
    quantity: Any = None
    unit_price: Any = 0
    shortage_action: Optional[str] = Field(None, description="PRODUCE (default) or BUY")


class OrderCreate(BaseModel):
    """Submit a new order"""
    items: List[OrderItemCreate] = Field(default_factory=list)
    status: Optional[str] = Field(None, description="DRAFT or OPEN (default)")


class OrderTrashUpdate(BaseModel):
    """Move an order to or out of the trash"""
    trashed: bool


class OrderStatusUpdate(BaseModel):
    """Change an order's status"""
    status: str


# ============================================================================
# Responses
# ============================================================================

class OrderItemResponse(BaseModel):
    id: int
    material_id: int
    material_sku: Optional[str] = None
    material_name: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal
    qty_reserved_from_stock: Decimal
    qty_to_produce: Decimal
    shortage_action: str

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Order with its lines"""
    id: int
    order_number: Optional[str] = None
    status: str
    total: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None
    trashed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True
