from decimal import Decimal, InvalidOperation
from typing import Optional


def ensure_min_quantity(value, field: str = "quantity", minimum: int = 1) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if qty < minimum:
        raise ValueError(f"{field} must be >= {minimum}")
    return qty


def ensure_valid_price(value, field: str = "price") -> Decimal:
    """Finite, non-negative amount."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (TypeError, ValueError, InvalidOperation):
        raise ValueError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a finite number")
    if amount < 0:
        raise ValueError(f"{field} must be >= 0")
    return amount


def normalize_coupon_code(value: Optional[str]) -> str:
    return (value or "").strip().upper()
