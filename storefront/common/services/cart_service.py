from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from ..db.session import get_session
from ..errors import CartStoreError, CartValidationError
from ..models.cart import Cart
from ..models.cart_item import CartItem
from ..models.product import Product, ProductImage, ProductVariant
from ..models.store import Store
from ..utils.money import effective_price
from ..utils.text import slugify
from .cart_state import LineItem
from .logging import log_event


PLACEHOLDER_IMAGE = "/placeholder.svg"
MISSING_STORE_NAME = "Store not found"

_UPSERT_DIALECTS = ("sqlite", "postgresql")


def _dialect_insert(dialect: str):
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert


class CartService:
    """Persisted cart rows backed by DB (one cart per user)."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _dialect(session: Session) -> str:
        return session.get_bind().dialect.name

    def find_cart_id(self, user_id: str) -> Optional[str]:
        if not user_id:
            raise CartValidationError("user_id required")
        try:
            with self._session_factory() as session:
                return session.execute(select(Cart.id).where(Cart.user_id == user_id)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise CartStoreError("cart lookup failed", cause=exc) from exc

    def get_or_create_cart(self, user_id: str) -> str:
        """Return the user's cart id, creating the cart on first access."""
        if not user_id:
            raise CartValidationError("user_id required")
        try:
            with self._session_factory() as session:
                dialect = self._dialect(session)
                if dialect in _UPSERT_DIALECTS:
                    stmt = (
                        _dialect_insert(dialect)(Cart)
                        .values(id=str(uuid4()), user_id=user_id)
                        .on_conflict_do_nothing(index_elements=["user_id"])
                    )
                    session.execute(stmt)
                    return session.execute(select(Cart.id).where(Cart.user_id == user_id)).scalar_one()
                existing = session.execute(select(Cart.id).where(Cart.user_id == user_id)).scalar_one_or_none()
                if existing:
                    return existing
            return self._insert_cart(user_id)
        except SQLAlchemyError as exc:
            log_event("error", "cart.resolve_failed", user_id=user_id, error=str(exc))
            raise CartStoreError("could not create or retrieve cart", cause=exc) from exc

    def _insert_cart(self, user_id: str) -> str:
        cart_id = str(uuid4())
        try:
            with self._session_factory() as session:
                session.add(Cart(id=cart_id, user_id=user_id))
            log_event("info", "cart.created", user_id=user_id, cart_id=cart_id)
            return cart_id
        except IntegrityError:
            # another request created the cart in the meantime; re-fetch once
            log_event("warning", "cart.create_conflict", user_id=user_id)
            with self._session_factory() as session:
                existing = session.execute(select(Cart.id).where(Cart.user_id == user_id)).scalar_one_or_none()
            if not existing:
                raise CartStoreError("failed to retrieve cart after creation conflict")
            return existing

    def load_items(self, cart_id: str) -> List[LineItem]:
        """Cart rows (newest first) with display fields resolved."""
        try:
            with self._session_factory() as session:
                rows = (
                    session.query(CartItem, Product, Store, ProductVariant)
                    .join(Product, Product.id == CartItem.product_id)
                    .outerjoin(Store, Store.id == Product.store_id)
                    .outerjoin(ProductVariant, ProductVariant.id == CartItem.variant_id)
                    .filter(CartItem.cart_id == cart_id)
                    .order_by(CartItem.created_at.desc())
                    .all()
                )
                product_ids = list({prod.id for _, prod, _, _ in rows})
                images: Dict[str, str] = {}
                if product_ids:
                    for img in (
                        session.query(ProductImage)
                        .filter(ProductImage.product_id.in_(product_ids), ProductImage.is_primary.is_(True))
                        .all()
                    ):
                        images.setdefault(img.product_id, img.url)
                return [self._to_line_item(it, prod, store, variant, images.get(prod.id)) for it, prod, store, variant in rows]
        except SQLAlchemyError as exc:
            raise CartStoreError("could not load cart items", cause=exc) from exc

    @staticmethod
    def _to_line_item(row: CartItem, prod: Product, store: Optional[Store], variant: Optional[ProductVariant], image: Optional[str]) -> LineItem:
        store_id = store.id if store else (prod.store_id or "")
        store_name = store.name if store else MISSING_STORE_NAME
        store_slug = (store.slug if store else "") or slugify(store.name if store else "") or f"store-{store_id}"
        price = effective_price(variant.price, variant.discount_price) if variant else None
        if price is None:
            price = effective_price(prod.price, prod.discount_price)
        return LineItem(
            id=row.id,
            product_id=row.product_id,
            variant_id=row.variant_id,
            quantity=row.quantity,
            price=price if price is not None else Decimal("0"),
            name=prod.name,
            slug=prod.slug or slugify(prod.name) or f"product-{prod.id}",
            image=image or PLACEHOLDER_IMAGE,
            store_id=store_id,
            store_name=store_name,
            store_slug=store_slug,
            category_id=prod.category_id,
            variant_name=variant.name if variant else None,
            options=dict(variant.options or {}) if variant else {},
        )

    @staticmethod
    def _ensure_purchasable(session: Session, product_id: str, variant_id: Optional[str]) -> None:
        prod = (
            session.query(Product.id)
            .filter(Product.id == product_id, Product.is_active.is_(True))
            .first()
        )
        if not prod:
            raise CartValidationError("product not found or inactive")
        if variant_id:
            variant = (
                session.query(ProductVariant.id)
                .filter(ProductVariant.id == variant_id, ProductVariant.product_id == product_id)
                .first()
            )
            if not variant:
                raise CartValidationError("variant not found for this product")

    def upsert_item(self, cart_id: str, product_id: str, variant_id: Optional[str], quantity: int) -> str:
        """Insert the line or add ``quantity`` to the existing one; returns the row id."""
        if not cart_id or not product_id:
            raise CartValidationError("cart_id and product_id required")
        if quantity < 1:
            raise CartValidationError("quantity must be >= 1")
        variant_key = variant_id or ""
        try:
            with self._session_factory() as session:
                self._ensure_purchasable(session, product_id, variant_id)
                dialect = self._dialect(session)
                if dialect in _UPSERT_DIALECTS:
                    stmt = _dialect_insert(dialect)(CartItem).values(
                        id=str(uuid4()),
                        cart_id=cart_id,
                        product_id=product_id,
                        variant_id=variant_id or None,
                        variant_key=variant_key,
                        quantity=quantity,
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["cart_id", "product_id", "variant_key"],
                        set_={"quantity": CartItem.__table__.c.quantity + stmt.excluded.quantity},
                    )
                    session.execute(stmt)
                    return session.execute(
                        select(CartItem.id).where(
                            CartItem.cart_id == cart_id,
                            CartItem.product_id == product_id,
                            CartItem.variant_key == variant_key,
                        )
                    ).scalar_one()
                existing = (
                    session.query(CartItem)
                    .filter(
                        CartItem.cart_id == cart_id,
                        CartItem.product_id == product_id,
                        CartItem.variant_key == variant_key,
                    )
                    .first()
                )
                if existing:
                    existing.quantity = existing.quantity + quantity
                    return existing.id
                item = CartItem(
                    id=str(uuid4()),
                    cart_id=cart_id,
                    product_id=product_id,
                    variant_id=variant_id or None,
                    variant_key=variant_key,
                    quantity=quantity,
                )
                session.add(item)
                return item.id
        except SQLAlchemyError as exc:
            log_event("error", "cart.upsert_failed", cart_id=cart_id, product_id=product_id, error=str(exc))
            raise CartStoreError("could not add item to cart", cause=exc) from exc

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity < 1:
            raise CartValidationError("quantity must be >= 1")
        try:
            with self._session_factory() as session:
                it = session.query(CartItem).filter(CartItem.id == item_id).first()
                if not it:
                    raise CartStoreError("cart item not found")
                it.quantity = quantity
        except SQLAlchemyError as exc:
            raise CartStoreError("could not update quantity", cause=exc) from exc

    def delete_item(self, item_id: str) -> None:
        try:
            with self._session_factory() as session:
                session.query(CartItem).filter(CartItem.id == item_id).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            raise CartStoreError("could not delete cart item", cause=exc) from exc

    def delete_all(self, cart_id: str) -> int:
        try:
            with self._session_factory() as session:
                return session.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            raise CartStoreError("could not clear cart", cause=exc) from exc
