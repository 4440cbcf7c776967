"""
Stock Ledger Service

Authoritative on-hand quantity per material. The only writers are posted
receipts (credit) and manual adjustments, both of which go through the
locked balance row so on_hand never drops below zero and concurrent writers
serialize.

The material row doubles as the per-material mutex: allocation passes and
order submissions lock it for the duration of their shortage computation.
A transaction that needs several materials locks them in ascending id
order, so two writers touching the same materials never wait on each other
in a cycle.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from stockflow.exceptions import NotFoundError, ValidationError
from stockflow.logging_config import get_logger
from stockflow.models.inventory import InventoryAdjustment, StockBalance
from stockflow.models.material import Material
from stockflow.models.reservation import StockReservation
from stockflow.services.amounts import ZERO, parse_entity_id, to_decimal

logger = get_logger(__name__)


def lock_material(db: Session, material_id: int) -> Material:
    """
    Lock the material row (SELECT ... FOR UPDATE) for the rest of the transaction.

    Callers locking more than one material take them in ascending id order.

    Raises:
        NotFoundError: material does not exist
    """
    material = (
        db.query(Material)
        .filter(Material.id == material_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if material is None:
        raise NotFoundError("Material", material_id)
    return material


def resolve_material_id(db: Session, value: Any) -> Optional[int]:
    """
    Resolve a material reference to an existing material id.

    Accepts an id (12, "12", "M-12") or, failing that, a SKU or name.
    """
    if value is None or isinstance(value, bool):
        return None

    material_id = parse_entity_id(value)
    if material_id is not None:
        exists = db.query(Material.id).filter(Material.id == material_id).first()
        return material_id if exists else None

    text = str(value).strip()
    if not text:
        return None
    row = (
        db.query(Material.id)
        .filter(or_(Material.sku == text, func.lower(Material.name) == text.lower()))
        .order_by(Material.id)
        .first()
    )
    return row[0] if row else None


def get_balance(db: Session, material_id: int, *, for_update: bool = False) -> Optional[StockBalance]:
    """Get the balance row for a material, optionally locking it."""
    query = db.query(StockBalance).filter(StockBalance.material_id == material_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_on_hand(db: Session, material_id: int) -> Decimal:
    """Current on-hand quantity (0 when the material has never been stocked)."""
    balance = get_balance(db, material_id)
    if balance is None:
        return ZERO
    return to_decimal(balance.on_hand)


def _get_or_create_balance(db: Session, material_id: int) -> StockBalance:
    # Caller holds the material lock, so the lazy insert cannot race.
    balance = get_balance(db, material_id, for_update=True)
    if balance is None:
        balance = StockBalance(material_id=material_id, on_hand=ZERO)
        db.add(balance)
        db.flush()
    return balance


def credit(db: Session, material_id: int, qty: Decimal) -> StockBalance:
    """
    Add received quantity to on-hand stock.

    Args:
        db: Database session
        material_id: Material being received
        qty: Quantity received (must be positive)

    Returns:
        The updated StockBalance
    """
    qty = to_decimal(qty)
    if qty <= ZERO:
        raise ValidationError("Credited quantity must be greater than zero", field="qty")

    lock_material(db, material_id)
    balance = _get_or_create_balance(db, material_id)
    before = to_decimal(balance.on_hand)
    balance.on_hand = before + qty
    balance.updated_at = datetime.utcnow()
    db.flush()

    logger.info(
        "Stock credited",
        extra={"material_id": material_id, "qty": qty, "on_hand_before": before, "on_hand_after": balance.on_hand},
    )
    return balance


def adjust_stock(
    db: Session,
    material_id: Any,
    new_on_hand: Any,
    reason: Optional[str],
    actor: Optional[str] = None,
) -> InventoryAdjustment:
    """
    Set the on-hand quantity of a material to a counted value.

    Records an InventoryAdjustment with the before/after quantities and the
    signed delta.

    Raises:
        ValidationError: bad material id, negative or non-numeric quantity, missing reason
        NotFoundError: material does not exist
    """
    errors: Dict[str, str] = {}
    parsed_material_id = parse_entity_id(material_id)
    if parsed_material_id is None:
        errors["material_id"] = "material_id is required"

    try:
        target = to_decimal(new_on_hand, default=None)  # type: ignore[arg-type]
    except (ArithmeticError, ValueError, TypeError):
        target = None
        errors["on_hand"] = "on_hand must be a number"
    else:
        if target is None:
            errors["on_hand"] = "on_hand is required"
        elif target < ZERO:
            errors["on_hand"] = "on_hand cannot be negative"

    if not reason or not str(reason).strip():
        errors["reason"] = "reason is required"

    if errors:
        raise ValidationError("Invalid stock adjustment", errors=errors)

    lock_material(db, parsed_material_id)
    balance = _get_or_create_balance(db, parsed_material_id)
    qty_before = to_decimal(balance.on_hand)
    balance.on_hand = target
    balance.updated_at = datetime.utcnow()

    adjustment = InventoryAdjustment(
        material_id=parsed_material_id,
        qty_before=qty_before,
        qty_after=target,
        adjustment_qty=target - qty_before,
        reason=str(reason).strip(),
        actor=actor,
        created_at=datetime.utcnow(),
    )
    db.add(adjustment)
    db.flush()

    logger.info(
        "Stock adjusted",
        extra={
            "material_id": parsed_material_id,
            "qty_before": qty_before,
            "qty_after": target,
            "actor": actor,
            "reason": adjustment.reason,
        },
    )
    return adjustment


def stock_snapshot(db: Session, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Per-material stock view for the read side.

    Returns one entry per material with on_hand, reserved_total (sum of
    stock reservations), available (on_hand - reserved_total, floored at 0)
    and the number of reservations whose soft TTL has passed.
    """
    now = now or datetime.utcnow()

    reserved_rows = (
        db.query(
            StockReservation.material_id,
            func.coalesce(func.sum(StockReservation.qty), 0),
        )
        .group_by(StockReservation.material_id)
        .all()
    )
    reserved_by_material = {mid: to_decimal(total) for mid, total in reserved_rows}

    stale_rows = (
        db.query(StockReservation.material_id, func.count(StockReservation.id))
        .filter(StockReservation.expires_at <= now)
        .group_by(StockReservation.material_id)
        .all()
    )
    stale_by_material = {mid: count for mid, count in stale_rows}

    rows = (
        db.query(Material, StockBalance.on_hand)
        .outerjoin(StockBalance, StockBalance.material_id == Material.id)
        .order_by(Material.id)
        .all()
    )

    snapshot = []
    for material, on_hand in rows:
        on_hand = to_decimal(on_hand)
        reserved_total = reserved_by_material.get(material.id, ZERO)
        available = on_hand - reserved_total
        snapshot.append({
            "material_id": material.id,
            "sku": material.sku,
            "name": material.name,
            "unit": material.unit,
            "min_stock": to_decimal(material.min_stock),
            "reorder_point": to_decimal(material.reorder_point),
            "on_hand": on_hand,
            "reserved_total": reserved_total,
            "available": available if available > ZERO else ZERO,
            "stale_reservations": stale_by_material.get(material.id, 0),
        })
    return snapshot
