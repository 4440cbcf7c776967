"""
API v1 Router - StockFlow
"""
from fastapi import APIRouter
from stockflow.api.v1.endpoints import (
    orders,
    receipts,
    production,
    inventory,
)

router = APIRouter()

# Orders (submission, lifecycle)
router.include_router(
    orders.router,
    prefix="/orders",
    tags=["orders"]
)

# Inventory receipts
router.include_router(
    receipts.router,
    prefix="/receipts",
    tags=["receipts"]
)

# Production board
router.include_router(
    production.router,
    prefix="/production",
    tags=["production"]
)

# Stock levels and adjustments
router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["inventory"]
)
