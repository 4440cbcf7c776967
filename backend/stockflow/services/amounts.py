"""
Amount and identifier normalization

Database drivers and request payloads hand us quantities as Decimal, int,
float, str or None. They are converted to Decimal once, here, and every
service works with Decimal from then on.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")

_PREFIXED_ID = re.compile(r"^\s*[A-Za-z]{1,3}-(\d+)\s*$")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a raw numeric-or-string value to Decimal.

    None and empty strings become ``default``. Floats go through ``str`` so
    0.1 stays 0.1. NaN and infinities are rejected whatever their type.

    Raises:
        InvalidOperation: value is not a finite number
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidOperation(f"Boolean is not a quantity: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return default
        result = Decimal(text)
    if not result.is_finite():
        raise InvalidOperation(f"Not a finite number: {value!r}")
    return result


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Like to_decimal, but returns None instead of raising on bad input."""
    try:
        return to_decimal(value, default=None)  # type: ignore[arg-type]
    except (InvalidOperation, ValueError, TypeError):
        return None


def parse_entity_id(value: Any) -> Optional[int]:
    """
    Parse an identifier given as 12, "12" or a prefixed form like "O-12".

    Returns None when the value does not look like an id.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value).strip()
    if text.isdigit():
        parsed = int(text)
        return parsed if parsed > 0 else None
    match = _PREFIXED_ID.match(text)
    if match:
        parsed = int(match.group(1))
        return parsed if parsed > 0 else None
    return None


def clamp_non_negative(value: Decimal) -> Decimal:
    """max(0, value)"""
    return value if value > ZERO else ZERO
