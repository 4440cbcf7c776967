"""
Receipt Poster

Drafts and posts inventory receipts.

Posting a receipt, in one transaction:
1. Lock the receipt row; only DRAFT receipts can be posted
2. Lock every material on the receipt, lowest id first, then credit each
   positive line to the stock ledger in material order
3. Optionally hand the received quantity to waiting orders (allocation)
4. For PRODUCTION receipts, clear the target order's production
   reservation for each received material
5. Flip the receipt to POSTED

Because the receipt row is locked, a second post of the same receipt waits
for the first and then fails with AlreadyPostedError, so stock is credited
once.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockflow.core.status_config import ReceiptStatus, ReceiptType
from stockflow.exceptions import AlreadyPostedError, NotFoundError, ValidationError
from stockflow.logging_config import get_logger
from stockflow.models.inventory import InventoryReceipt, InventoryReceiptItem
from stockflow.models.order import Order
from stockflow.services.allocation import allocate
from stockflow.services.amounts import ZERO, parse_decimal, parse_entity_id, to_decimal
from stockflow.services.production_tasks import delete_production_reservation
from stockflow.services.stock_ledger import credit, lock_material, resolve_material_id

logger = get_logger(__name__)

RECEIPT_TYPES = {t.value for t in ReceiptType}


def get_receipt(db: Session, receipt_id: int, *, for_update: bool = False) -> InventoryReceipt:
    """
    Get a receipt by id.

    Raises:
        NotFoundError: receipt does not exist
    """
    query = db.query(InventoryReceipt).filter(InventoryReceipt.id == receipt_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    receipt = query.first()
    if receipt is None:
        raise NotFoundError("Receipt", receipt_id)
    return receipt


def create_receipt(
    db: Session,
    items: Optional[Iterable[Any]],
    type: Optional[str] = None,
    source_ref: Optional[str] = None,
) -> InventoryReceipt:
    """
    Create a DRAFT receipt.

    Raises:
        ValidationError: no lines, unknown material, non-positive qty, bad type
    """
    raw_items = list(items or [])
    errors: Dict[str, str] = {}

    type_value = str(type).strip().upper() if type not in (None, "") else ReceiptType.GENERAL.value
    if type_value not in RECEIPT_TYPES:
        errors["type"] = "Receipt type must be GENERAL or PRODUCTION"
    if type_value == ReceiptType.PRODUCTION.value and not (source_ref and str(source_ref).strip()):
        errors["source_ref"] = "Production receipts must reference an order"

    if not raw_items:
        errors["items"] = "Receipt must contain at least one item"

    lines: List[Dict[str, Any]] = []
    for idx, item in enumerate(raw_items):
        material_ref = item.get("material_id") if isinstance(item, dict) else getattr(item, "material_id", None)
        raw_qty = item.get("qty") if isinstance(item, dict) else getattr(item, "qty", None)

        material_id = resolve_material_id(db, material_ref)
        if material_id is None:
            errors[f"items[{idx}].material_id"] = "Material not found"
        qty = parse_decimal(raw_qty)
        if qty is None or qty <= ZERO:
            errors[f"items[{idx}].qty"] = "Quantity must be greater than zero"
        lines.append({"material_id": material_id, "qty": qty})

    if errors:
        raise ValidationError("Invalid receipt", errors=errors)

    receipt = InventoryReceipt(
        status=ReceiptStatus.DRAFT.value,
        type=type_value,
        source_ref=str(source_ref).strip() if source_ref else None,
        auto_allocated=False,
        created_at=datetime.utcnow(),
    )
    for line in lines:
        receipt.items.append(InventoryReceiptItem(material_id=line["material_id"], qty=line["qty"]))
    db.add(receipt)
    db.flush()

    logger.info(
        "Receipt drafted",
        extra={"receipt_id": receipt.id, "type": receipt.type, "lines": len(lines)},
    )
    return receipt


def resolve_target_order_id(db: Session, source_ref: Optional[str]) -> Optional[int]:
    """Order a production receipt replenishes: "O-<id>" or an order number."""
    if not source_ref:
        return None
    text = str(source_ref).strip()
    if text.upper().startswith("O-"):
        return parse_entity_id(text)
    row = db.query(Order.id).filter(Order.order_number == text).first()
    return row[0] if row else None


def post_receipt(
    db: Session,
    receipt_id: int,
    posted_by: Optional[str] = None,
    auto_allocate: bool = False,
) -> InventoryReceipt:
    """
    Post a DRAFT receipt.

    Does not commit; runs inside the caller's transaction so a failure
    anywhere undoes the credit, the allocation and the status flip together.

    Raises:
        NotFoundError: receipt does not exist
        AlreadyPostedError: receipt is not DRAFT
    """
    receipt = get_receipt(db, receipt_id, for_update=True)
    if receipt.status != ReceiptStatus.DRAFT.value:
        logger.warning(
            "Receipt already posted",
            extra={"receipt_id": receipt.id, "status": receipt.status, "posted_by": posted_by},
        )
        raise AlreadyPostedError(receipt.id, current_status=receipt.status)

    target_order_id = None
    if receipt.type == ReceiptType.PRODUCTION.value:
        target_order_id = resolve_target_order_id(db, receipt.source_ref)
        if target_order_id is None:
            logger.warning(
                "Production receipt without a resolvable order",
                extra={"receipt_id": receipt.id, "source_ref": receipt.source_ref},
            )

    lines = sorted(receipt.items, key=lambda i: (i.material_id, i.id))
    for material_id in sorted({i.material_id for i in lines}):
        lock_material(db, material_id)

    credited = ZERO
    for item in lines:
        qty = to_decimal(item.qty)
        if qty <= ZERO:
            continue
        credit(db, item.material_id, qty)
        credited += qty
        if auto_allocate:
            allocate(db, item.material_id, qty, posted_by)
        if target_order_id is not None:
            delete_production_reservation(db, target_order_id, item.material_id)

    receipt.status = ReceiptStatus.POSTED.value
    receipt.posted_at = datetime.utcnow()
    receipt.posted_by = posted_by
    receipt.auto_allocated = bool(auto_allocate)
    db.flush()

    logger.info(
        "Receipt posted",
        extra={
            "receipt_id": receipt.id,
            "type": receipt.type,
            "credited": credited,
            "auto_allocate": bool(auto_allocate),
            "target_order_id": target_order_id,
            "posted_by": posted_by,
        },
    )
    return receipt
