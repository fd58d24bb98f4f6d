"""Immutable cart snapshots and the pure operations over them.

A cart is either ``LocalCart`` (anonymous, kept only in the client mirror) or
``PersistedCart`` (one per authenticated user, stored in the database). The
functions in this module never touch storage; callers persist and mirror the
returned snapshots themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union
from uuid import uuid4


LineKey = Tuple[str, Optional[str]]


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


@dataclass(frozen=True)
class LineItem:
    """Single (product, variant, quantity, price) entry of a cart."""

    id: str
    product_id: str
    quantity: int
    price: Decimal
    variant_id: Optional[str] = None
    name: str = ""
    slug: str = ""
    image: str = ""
    store_id: str = ""
    store_name: str = ""
    store_slug: str = ""
    category_id: Optional[str] = None
    variant_name: Optional[str] = None
    options: Dict[str, str] = field(default_factory=dict)
    latest_price: Optional[Decimal] = None
    price_changed: bool = False

    @property
    def key(self) -> LineKey:
        return self.product_id, self.variant_id or None

    @property
    def unit_price(self) -> Decimal:
        return self.latest_price if self.latest_price is not None else self.price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "price": str(self.price),
            "name": self.name,
            "slug": self.slug,
            "image": self.image,
            "store_id": self.store_id,
            "store_name": self.store_name,
            "store_slug": self.store_slug,
            "category_id": self.category_id,
            "variant_name": self.variant_name,
            "options": dict(self.options or {}),
            "latest_price": str(self.latest_price) if self.latest_price is not None else None,
            "price_changed": self.price_changed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        """Build from the mirror form; raises ValueError on malformed data."""
        if not isinstance(data, dict):
            raise ValueError("line item must be an object")
        product_id = str(data.get("product_id") or "").strip()
        if not product_id:
            raise ValueError("line item without product_id")
        latest = data.get("latest_price")
        return cls(
            id=str(data.get("id") or new_local_id()),
            product_id=product_id,
            variant_id=data.get("variant_id") or None,
            quantity=int(data.get("quantity") or 0),
            price=_to_decimal(data.get("price")),
            name=data.get("name") or "",
            slug=data.get("slug") or "",
            image=data.get("image") or "",
            store_id=data.get("store_id") or "",
            store_name=data.get("store_name") or "",
            store_slug=data.get("store_slug") or "",
            category_id=data.get("category_id") or None,
            variant_name=data.get("variant_name") or None,
            options=dict(data.get("options") or {}),
            latest_price=_to_decimal(latest) if latest not in (None, "") else None,
            price_changed=bool(data.get("price_changed", False)),
        )


@dataclass(frozen=True)
class LocalCart:
    items: Tuple[LineItem, ...] = ()

    @property
    def is_persisted(self) -> bool:
        return False


@dataclass(frozen=True)
class PersistedCart:
    owner_id: str
    cart_id: Optional[str] = None
    items: Tuple[LineItem, ...] = ()

    @property
    def is_persisted(self) -> bool:
        return True


Cart = Union[LocalCart, PersistedCart]


def new_local_id() -> str:
    return f"local-{uuid4().hex}"


def is_local_id(item_id: str) -> bool:
    return str(item_id).startswith("local-")


def normalize_items(items: Iterable[LineItem]) -> Tuple[LineItem, ...]:
    """Merge duplicate (product, variant) pairs by summing quantities.

    The first occurrence keeps its id and display fields; rows with a
    quantity below 1 are dropped.
    """
    merged: Dict[LineKey, LineItem] = {}
    for item in items:
        if item.quantity < 1:
            continue
        existing = merged.get(item.key)
        if existing is None:
            merged[item.key] = item
        else:
            merged[item.key] = replace(existing, quantity=existing.quantity + item.quantity)
    return tuple(merged.values())


def add_item(
    items: Iterable[LineItem],
    item: LineItem,
    *,
    id_factory: Callable[[], str] = new_local_id,
) -> Tuple[LineItem, ...]:
    current = tuple(items)
    for idx, existing in enumerate(current):
        if existing.key == item.key:
            bumped = replace(existing, quantity=existing.quantity + item.quantity)
            return current[:idx] + (bumped,) + current[idx + 1:]
    return current + (replace(item, id=id_factory()),)


def set_quantity(items: Iterable[LineItem], item_id: str, quantity: int) -> Tuple[LineItem, ...]:
    if quantity < 1:
        return remove_item(items, item_id)
    return tuple(replace(it, quantity=quantity) if it.id == item_id else it for it in items)


def remove_item(items: Iterable[LineItem], item_id: str) -> Tuple[LineItem, ...]:
    return tuple(it for it in items if it.id != item_id)


def find_item(items: Iterable[LineItem], item_id: str) -> Optional[LineItem]:
    for it in items:
        if it.id == item_id:
            return it
    return None


def subtotal(items: Iterable[LineItem]) -> Decimal:
    return sum((it.line_total for it in items), Decimal("0"))


def item_count(items: Iterable[LineItem]) -> int:
    return sum(it.quantity for it in items)
