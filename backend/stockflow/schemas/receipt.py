"""
Inventory Receipt Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Optional, List
from datetime import datetime
from decimal import Decimal


class ReceiptItemCreate(BaseModel):
    material_id: Any = None
    qty: Any = None


class ReceiptCreate(BaseModel):
    """Draft a receipt"""
    items: List[ReceiptItemCreate] = Field(default_factory=list)
    type: Optional[str] = Field(None, description="GENERAL (default) or PRODUCTION")
    source_ref: Optional[str] = Field(
        None, max_length=100, description="Target order for PRODUCTION receipts: 'O-<id>' or order number"
    )


class ReceiptAction(BaseModel):
    """Act on a receipt; only 'post' is supported"""
    action: Optional[str] = None
    auto_allocate: bool = False


class ReceiptItemResponse(BaseModel):
    id: int
    material_id: int
    qty: Decimal

    class Config:
        from_attributes = True


class ReceiptResponse(BaseModel):
    id: int
    status: str
    type: str
    source_ref: Optional[str] = None
    posted_at: Optional[datetime] = None
    posted_by: Optional[str] = None
    auto_allocated: bool = False
    created_at: datetime
    items: List[ReceiptItemResponse] = []

    class Config:
        from_attributes = True
