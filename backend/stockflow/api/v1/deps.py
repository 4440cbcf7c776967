"""
API Dependencies

Authentication lives in front of this service; the caller's identity
arrives in the X-User-Id header and is only recorded (reservations,
adjustments, posted receipts), never checked.
"""
from typing import Any, Optional

from fastapi import Header

from stockflow.db.session import get_db  # noqa: F401  (re-exported for endpoints)
from stockflow.exceptions import NotFoundError
from stockflow.services.amounts import parse_entity_id


def get_actor_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[str]:
    """Acting user from the X-User-Id header (None when absent or blank)."""
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    return x_user_id or None


def path_id(resource: str, raw_id: Any) -> int:
    """
    Parse a path id given as "12" or in prefixed form ("O-12", "PT-3").

    Raises:
        NotFoundError: the value cannot be an id of ``resource``
    """
    parsed = parse_entity_id(raw_id)
    if parsed is None:
        raise NotFoundError(resource, raw_id)
    return parsed
