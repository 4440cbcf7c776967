"""Database models"""
from stockflow.models.material import Material
from stockflow.models.inventory import (
    StockBalance,
    InventoryAdjustment,
    InventoryReceipt,
    InventoryReceiptItem,
)
from stockflow.models.order import Order, OrderItem, OrderSequence
from stockflow.models.production import ProductionTask
from stockflow.models.reservation import StockReservation, ProductionReservation
from stockflow.models.notification import Notification

__all__ = [
    # Catalog
    "Material",
    # Inventory
    "StockBalance",
    "InventoryAdjustment",
    "InventoryReceipt",
    "InventoryReceiptItem",
    # Orders
    "Order",
    "OrderItem",
    "OrderSequence",
    # Production
    "ProductionTask",
    # Reservations
    "StockReservation",
    "ProductionReservation",
    # Notifications
    "Notification",
]
