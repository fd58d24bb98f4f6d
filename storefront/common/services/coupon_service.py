from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Iterable, Optional
from sqlalchemy.exc import SQLAlchemyError
from ..db.session import get_session
from ..errors import CartStoreError
from ..models.coupon import Coupon
from ..utils.money import floor_amount, to_amount
from ..utils.validators import normalize_coupon_code
from .cart_state import LineItem, subtotal
from .logging import log_event


PERCENTAGE = "percentage"
FIXED = "fixed_amount"

ALL_PRODUCTS = "all_products"
SPECIFIC_PRODUCTS = "specific_products"
SPECIFIC_CATEGORIES = "specific_categories"

MSG_EMPTY_CODE = "Please enter a coupon code."
MSG_INVALID = "Invalid or inactive coupon code."
MSG_NO_MATCH = "This coupon does not match any product in your cart."
MSG_STORE_ERROR = "Coupon could not be checked right now. Please try again."


@dataclass(frozen=True)
class CouponRule:
    """The parts of a coupon the cart needs to price it."""

    id: str
    code: str
    discount_type: str
    discount_value: Decimal
    min_purchase_amount: Optional[Decimal] = None
    applicable_to: str = ALL_PRODUCTS
    product_ids: FrozenSet[str] = field(default_factory=frozenset)
    category_ids: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_row(cls, row: Coupon) -> "CouponRule":
        return cls(
            id=row.id,
            code=row.code,
            discount_type=row.discount_type,
            discount_value=to_amount(row.discount_value),
            min_purchase_amount=to_amount(row.min_purchase_amount) if row.min_purchase_amount is not None else None,
            applicable_to=row.applicable_to or ALL_PRODUCTS,
            product_ids=frozenset(str(p) for p in (row.applicable_product_ids or [])),
            category_ids=frozenset(str(c) for c in (row.applicable_category_ids or [])),
        )


@dataclass(frozen=True)
class CouponResult:
    ok: bool
    message: str
    discount: Decimal = Decimal("0")
    code: Optional[str] = None
    coupon_id: Optional[str] = None
    eligible_subtotal: Decimal = Decimal("0")

    def to_dict(self) -> Dict:
        return {
            "ok": self.ok,
            "message": self.message,
            "code": self.code,
            "discount": float(self.discount),
            "eligible_subtotal": float(self.eligible_subtotal),
        }


def _rejected(message: str, code: Optional[str] = None) -> CouponResult:
    return CouponResult(ok=False, message=message, code=code)


def eligible_subtotal(rule: CouponRule, items: Iterable[LineItem]) -> Decimal:
    items = list(items)
    if rule.applicable_to == SPECIFIC_PRODUCTS:
        items = [it for it in items if it.product_id in rule.product_ids]
    elif rule.applicable_to == SPECIFIC_CATEGORIES:
        items = [it for it in items if it.category_id and it.category_id in rule.category_ids]
    return subtotal(items)


def compute_discount(rule: CouponRule, eligible: Decimal) -> Decimal:
    if rule.discount_type == PERCENTAGE:
        return floor_amount(eligible * rule.discount_value / Decimal("100"))
    return min(eligible, rule.discount_value)


def evaluate_coupon(rule: CouponRule, items: Iterable[LineItem]) -> CouponResult:
    """Check minimum purchase and scope, then price the discount."""
    items = list(items)
    cart_subtotal = subtotal(items)
    if rule.min_purchase_amount is not None and cart_subtotal < rule.min_purchase_amount:
        return _rejected(
            f"This coupon requires a minimum purchase of {rule.min_purchase_amount}.",
            rule.code,
        )
    eligible = eligible_subtotal(rule, items)
    if rule.applicable_to != ALL_PRODUCTS and eligible <= 0:
        return _rejected(MSG_NO_MATCH, rule.code)
    discount = compute_discount(rule, eligible)
    return CouponResult(
        ok=True,
        message=f"Coupon {rule.code} applied.",
        discount=discount,
        code=rule.code,
        coupon_id=rule.id,
        eligible_subtotal=eligible,
    )


def apply_coupon(code: Optional[str], items: Iterable[LineItem], lookup: Callable[[str], Optional[CouponRule]]) -> CouponResult:
    normalized = normalize_coupon_code(code)
    if not normalized:
        return _rejected(MSG_EMPTY_CODE)
    try:
        rule = lookup(normalized)
    except CartStoreError as exc:
        log_event("error", "coupon.lookup_failed", code=normalized, error=str(exc))
        return _rejected(MSG_STORE_ERROR, normalized)
    if rule is None:
        log_event("info", "coupon.rejected", code=normalized, reason="invalid")
        return _rejected(MSG_INVALID, normalized)
    result = evaluate_coupon(rule, items)
    if not result.ok:
        log_event("info", "coupon.rejected", code=normalized, reason=result.message)
    return result


class CouponService:
    """Coupon lookup backed by DB. Usage counters are enforced at checkout, not here."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def find_active(self, code: str) -> Optional[CouponRule]:
        try:
            with self._session_factory() as session:
                row = (
                    session.query(Coupon)
                    .filter(Coupon.code == code, Coupon.is_active.is_(True))
                    .first()
                )
                return CouponRule.from_row(row) if row else None
        except SQLAlchemyError as exc:
            raise CartStoreError("coupon lookup failed", cause=exc) from exc

    def apply(self, code: Optional[str], items: Iterable[LineItem]) -> CouponResult:
        return apply_coupon(code, items, self.find_active)
