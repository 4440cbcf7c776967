"""
Order numbering

Order numbers are the calendar day followed by that day's sequence number,
zero padded to at least two digits: 2025031401, 2025031402, ... 20250314100.

The sequence lives in one OrderSequence row per day, read with
SELECT ... FOR UPDATE so concurrent submissions queue on it. The increment
is part of the caller's transaction: a rolled back submission gives its
number back.
"""
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.logging_config import get_logger
from stockflow.models.order import OrderSequence

logger = get_logger(__name__)


def day_key(day: Union[date, datetime, None] = None) -> str:
    return (day or datetime.utcnow()).strftime("%Y%m%d")


def format_order_number(key: str, value: int) -> str:
    return f"{key}{value:02d}"


def _locked_sequence(db: Session, key: str) -> Optional[OrderSequence]:
    return (
        db.query(OrderSequence)
        .filter(OrderSequence.day_key == key)
        .with_for_update()
        .populate_existing()
        .first()
    )


def next_order_number(db: Session, day: Union[date, datetime, None] = None) -> str:
    """
    Issue the next order number for ``day`` (today by default).

    The first submission of a day creates the counter row inside a
    savepoint; if another transaction created it first the savepoint is
    rolled back and the existing row is locked instead.
    """
    key = day_key(day)
    sequence = _locked_sequence(db, key)

    if sequence is None:
        savepoint = db.begin_nested()
        try:
            sequence = OrderSequence(day_key=key, last_value=0)
            db.add(sequence)
            db.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("Order sequence created concurrently, retrying", extra={"day_key": key})
            sequence = _locked_sequence(db, key)
            if sequence is None:
                raise

    sequence.last_value = (sequence.last_value or 0) + 1
    db.flush()

    number = format_order_number(key, sequence.last_value)
    logger.debug("Order number issued", extra={"day_key": key, "order_number": number})
    return number
