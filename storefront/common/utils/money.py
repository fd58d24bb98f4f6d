from decimal import Decimal, ROUND_FLOOR
from typing import Optional


def to_amount(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def effective_price(price, discount_price=None) -> Optional[Decimal]:
    """Discounted price when one is set (and positive), otherwise the base price."""
    if discount_price is not None and to_amount(discount_price) > 0:
        return to_amount(discount_price)
    if price is None:
        return None
    return to_amount(price)


def floor_amount(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)
