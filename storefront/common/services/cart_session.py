"""Cart state container.

``CartSession`` owns the current cart snapshot for one visitor and exposes
the cart operations (load, add, set quantity, remove, clear, summary). Every
operation returns a ``CartResult`` instead of raising, and after every change
the snapshot is written to the client-side mirror as an explicit step.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..errors import CartError, CartValidationError
from ..utils.validators import ensure_min_quantity, ensure_valid_price
from .cart_service import CartService
from .cart_state import (
    Cart,
    LineItem,
    LocalCart,
    PersistedCart,
    add_item,
    find_item,
    is_local_id,
    item_count,
    normalize_items,
    remove_item,
    set_quantity,
    subtotal,
)
from .coupon_service import CouponResult, CouponService
from .logging import log_event
from .pricing_service import PriceService
from .shipping_service import ShippingQuote, ShippingService


ERROR_VALIDATION = "validation"
ERROR_STORE = "store"


class CartMirror(Protocol):
    """Client-side copy of the cart (browser storage, session cookie ...)."""

    def load(self) -> Optional[Any]: ...

    def save(self, items: List[Dict[str, Any]]) -> None: ...

    def clear(self) -> None: ...


class MemoryMirror:
    def __init__(self, data: Optional[Any] = None) -> None:
        self.data = data

    def load(self) -> Optional[Any]:
        return self.data

    def save(self, items: List[Dict[str, Any]]) -> None:
        self.data = items

    def clear(self) -> None:
        self.data = None


@dataclass(frozen=True)
class CartResult:
    ok: bool
    cart: Cart
    message: str = ""
    local_only: bool = False
    error: Optional[str] = None

    @property
    def items(self) -> Tuple[LineItem, ...]:
        return self.cart.items


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    item_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": float(self.subtotal),
            "shipping": float(self.shipping),
            "discount": float(self.discount),
            "total": float(self.total),
            "item_count": self.item_count,
        }


@dataclass(frozen=True)
class CartSummary:
    items: Tuple[LineItem, ...]
    shipping: ShippingQuote
    coupon: Optional[CouponResult]
    totals: CartTotals


def compute_totals(items, shipping: ShippingQuote, coupon: Optional[CouponResult] = None) -> CartTotals:
    """subtotal + shipping - discount; the discount is already capped by the coupon rules."""
    items = tuple(items)
    sub = subtotal(items)
    discount = coupon.discount if coupon is not None and coupon.ok else Decimal("0")
    return CartTotals(
        subtotal=sub,
        shipping=shipping.total,
        discount=discount,
        total=sub + shipping.total - discount,
        item_count=item_count(items),
    )


class CartSession:
    def __init__(
        self,
        *,
        user_id: Optional[str],
        mirror: CartMirror,
        cart_service: CartService,
        price_service: PriceService,
        shipping_service: ShippingService,
        coupon_service: Optional[CouponService] = None,
    ) -> None:
        self._cart: Cart = PersistedCart(owner_id=user_id) if user_id else LocalCart()
        self._mirror = mirror
        self._carts = cart_service
        self._prices = price_service
        self._shipping = shipping_service
        self._coupons = coupon_service

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def items(self) -> Tuple[LineItem, ...]:
        return self._cart.items

    def _commit(self, cart: Cart) -> Cart:
        self._cart = cart
        self._mirror.save([it.to_dict() for it in cart.items])
        return cart

    def _result(self, message: str = "", *, ok: bool = True, local_only: bool = False, error: Optional[str] = None) -> CartResult:
        return CartResult(ok=ok, cart=self._cart, message=message, local_only=local_only, error=error)

    def _read_mirror(self) -> Tuple[LineItem, ...]:
        raw = self._mirror.load()
        if not raw:
            return ()
        try:
            if not isinstance(raw, list):
                raise ValueError("mirror payload is not a list")
            return normalize_items(LineItem.from_dict(entry) for entry in raw)
        except (TypeError, ValueError) as exc:
            log_event("warning", "cart.mirror_discarded", error=str(exc))
            self._mirror.clear()
            return ()

    # -- load -------------------------------------------------------------

    def load(self) -> CartResult:
        cart = self._cart
        if isinstance(cart, LocalCart):
            items = self._prices.refresh_prices(self._read_mirror())
            self._commit(LocalCart(items=items))
            return self._result()
        try:
            cart_id = self._carts.get_or_create_cart(cart.owner_id)
            items = normalize_items(self._carts.load_items(cart_id))
        except CartError as exc:
            log_event("error", "cart.load_failed", user_id=cart.owner_id, error=str(exc))
            self._cart = replace(cart, items=self._read_mirror())
            return self._result(f"Cart could not be loaded: {exc}", ok=False, error=ERROR_STORE)
        items = self._prices.refresh_prices(items)
        self._commit(PersistedCart(owner_id=cart.owner_id, cart_id=cart_id, items=items))
        log_event("info", "cart.loaded", user_id=cart.owner_id, items=len(items))
        return self._result()

    # -- mutations --------------------------------------------------------

    def add(self, item: LineItem) -> CartResult:
        try:
            if not item.product_id:
                raise CartValidationError("product_id required")
            ensure_min_quantity(item.quantity)
            ensure_valid_price(item.price)
        except (CartValidationError, ValueError) as exc:
            return self._result(str(exc), ok=False, error=ERROR_VALIDATION)

        cart = self._cart
        if isinstance(cart, LocalCart):
            self._commit(replace(cart, items=add_item(cart.items, item)))
            log_event("info", "cart.item_added", local=True, product_id=item.product_id, quantity=item.quantity)
            return self._result(f"{item.name or 'Item'} added to cart.")

        try:
            cart_id = cart.cart_id or self._carts.get_or_create_cart(cart.owner_id)
            row_id = self._carts.upsert_item(cart_id, item.product_id, item.variant_id, item.quantity)
        except CartError as exc:
            log_event("error", "cart.add_failed", user_id=cart.owner_id, product_id=item.product_id, error=str(exc))
            error = ERROR_VALIDATION if isinstance(exc, CartValidationError) else ERROR_STORE
            return self._result(f"Could not add to cart: {exc}", ok=False, error=error)
        log_event("info", "cart.item_added", local=False, product_id=item.product_id, quantity=item.quantity)
        reloaded = self.load()
        if not reloaded.ok:
            # keep the saved line visible on top of the fallback copy
            items = add_item(self._cart.items, item, id_factory=lambda: row_id)
            self._commit(PersistedCart(owner_id=cart.owner_id, cart_id=cart_id, items=items))
            return self._result("Item added, but the cart could not be refreshed.")
        return self._result(f"{item.name or 'Item'} added to cart.")

    def set_quantity(self, item_id: str, quantity: int) -> CartResult:
        if quantity < 1:
            return self.remove(item_id)
        if find_item(self._cart.items, item_id) is None:
            return self._result("Item not found in cart.", ok=False, error=ERROR_VALIDATION)
        local_only = False
        if self._cart.is_persisted and not is_local_id(item_id):
            try:
                self._carts.update_quantity(item_id, quantity)
            except CartError as exc:
                log_event("warning", "cart.quantity_local_only", item_id=item_id, error=str(exc))
                local_only = True
        self._commit(replace(self._cart, items=set_quantity(self._cart.items, item_id, quantity)))
        if local_only:
            return self._result("Quantity updated locally; it could not be saved.", local_only=True)
        return self._result("Cart updated.")

    def remove(self, item_id: str) -> CartResult:
        local_only = False
        if self._cart.is_persisted and not is_local_id(item_id):
            try:
                self._carts.delete_item(item_id)
            except CartError as exc:
                log_event("warning", "cart.remove_local_only", item_id=item_id, error=str(exc))
                local_only = True
        self._commit(replace(self._cart, items=remove_item(self._cart.items, item_id)))
        if local_only:
            return self._result("Item removed locally; it could not be removed from your saved cart.", local_only=True)
        return self._result("Item removed from cart.")

    def clear(self) -> CartResult:
        cart = self._cart
        local_only = False
        if isinstance(cart, PersistedCart):
            try:
                cart_id = cart.cart_id or self._carts.find_cart_id(cart.owner_id)
                if cart_id:
                    self._carts.delete_all(cart_id)
            except CartError as exc:
                log_event("warning", "cart.clear_local_only", user_id=cart.owner_id, error=str(exc))
                local_only = True
        self._cart = replace(cart, items=())
        self._mirror.clear()
        if local_only:
            return self._result("Cart cleared locally; your saved cart could not be cleared.", local_only=True)
        return self._result("Cart cleared.")

    # -- pricing ----------------------------------------------------------

    def summary(self, coupon_code: Optional[str] = None) -> CartSummary:
        items = self._cart.items
        quote = self._shipping.quote(items)
        coupon = None
        if coupon_code is not None and self._coupons is not None:
            coupon = self._coupons.apply(coupon_code, items)
        return CartSummary(items=items, shipping=quote, coupon=coupon, totals=compute_totals(items, quote, coupon))
