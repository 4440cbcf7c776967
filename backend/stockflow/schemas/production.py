"""
Production Task Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from decimal import Decimal


class ProductionTaskUpsert(BaseModel):
    """Create or resize the task of an (order, material) pair by hand"""
    order_id: Any = None
    material_id: Any = None
    qty_to_produce: Any = None


class ProductionTaskMutation(BaseModel):
    """Board action: 'start' or 'complete'"""
    action: Optional[str] = Field(None, description="start | complete")


class ProductionTaskResponse(BaseModel):
    id: int
    order_id: int
    material_id: int
    order_number: Optional[str] = None
    material_name: Optional[str] = None
    qty_to_produce: Decimal
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
