from decimal import Decimal, InvalidOperation
from typing import Optional

from ..services.errors import ValidationError


def ensure_positive_int(value, field: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if v < 0:
        raise ValidationError(f"{field} must be >= 0")
    return v


def ensure_quantity(value, field: str = "quantity") -> int:
    v = ensure_positive_int(value, field)
    if v < 1:
        raise ValidationError(f"{field} must be >= 1")
    return v


def parse_decimal(value, field: str, required: bool = True) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"invalid {field}")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"invalid {field}")
    if not d.is_finite() or d < 0:
        raise ValidationError(f"{field} must be a non-negative number")
    return d


def require_text(value, field: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text
