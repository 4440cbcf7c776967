"""
Inventory Receipt API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockflow.api.v1.deps import get_actor_id, get_db, path_id
from stockflow.db.transaction import run_in_transaction
from stockflow.exceptions import InvalidActionError
from stockflow.schemas.common import OkResponse
from stockflow.schemas.receipt import ReceiptAction, ReceiptCreate, ReceiptResponse
from stockflow.services import cache_service
from stockflow.services.receipt_poster import create_receipt, get_receipt, post_receipt

router = APIRouter()

RECEIPT_ACTIONS = ["post"]


@router.post("", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
def draft_receipt(payload: ReceiptCreate, db: Session = Depends(get_db)):
    """Draft a receipt; stock moves only when it is posted."""
    items = [item.model_dump() for item in payload.items]
    receipt = run_in_transaction(
        db,
        lambda session: create_receipt(session, items, type=payload.type, source_ref=payload.source_ref),
        operation="create_receipt",
    )
    return ReceiptResponse.model_validate(receipt)


@router.get("/{receipt_id}", response_model=ReceiptResponse)
def get_receipt_detail(receipt_id: str, db: Session = Depends(get_db)):
    return ReceiptResponse.model_validate(get_receipt(db, path_id("Receipt", receipt_id)))


@router.patch("/{receipt_id}", response_model=OkResponse)
def act_on_receipt(
    receipt_id: str,
    payload: ReceiptAction,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Post a draft receipt (action "post").

    With auto_allocate the received quantity goes straight to waiting
    orders, oldest first. Posting twice fails with ALREADY_POSTED.
    """
    action = (payload.action or "").strip().lower()
    if action not in RECEIPT_ACTIONS:
        raise InvalidActionError(payload.action, allowed=RECEIPT_ACTIONS)

    parsed_id = path_id("Receipt", receipt_id)
    run_in_transaction(
        db,
        lambda session: post_receipt(
            session, parsed_id, posted_by=actor_id, auto_allocate=payload.auto_allocate
        ),
        operation="post_receipt",
    )
    cache_service.invalidate(cache_service.STOCK, cache_service.ORDERS, cache_service.PRODUCTION)
    return OkResponse()
