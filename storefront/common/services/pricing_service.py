from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from ..db.session import get_session
from ..models.product import Product, ProductVariant
from ..utils.money import effective_price
from .cart_state import LineItem, LineKey
from .logging import log_event


class PriceService:
    """Re-fetches current prices for cart lines.

    Issues at most two queries per refresh (products, then variants) no matter
    how large the cart is. A failed query leaves the lines it would have priced
    on their captured price, unflagged.
    """

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def _product_prices(self, product_ids: List[str]) -> Dict[str, Decimal]:
        prices: Dict[str, Decimal] = {}
        if not product_ids:
            return prices
        try:
            with self._session_factory() as session:
                for row in session.query(Product.id, Product.price, Product.discount_price).filter(Product.id.in_(product_ids)):
                    price = effective_price(row.price, row.discount_price)
                    if price is not None:
                        prices[row.id] = price
        except SQLAlchemyError as exc:
            log_event("error", "pricing.fetch_failed", table="product", count=len(product_ids), error=str(exc))
        return prices

    def _variant_prices(self, variant_ids: List[str]) -> Tuple[bool, Dict[str, Decimal]]:
        prices: Dict[str, Decimal] = {}
        if not variant_ids:
            return True, prices
        try:
            with self._session_factory() as session:
                for row in (
                    session.query(ProductVariant.id, ProductVariant.price, ProductVariant.discount_price)
                    .filter(ProductVariant.id.in_(variant_ids))
                ):
                    price = effective_price(row.price, row.discount_price)
                    if price is not None:
                        prices[row.id] = price
        except SQLAlchemyError as exc:
            log_event("error", "pricing.fetch_failed", table="product_variant", count=len(variant_ids), error=str(exc))
            return False, prices
        return True, prices

    def fetch_prices(self, items: Iterable[LineItem]) -> Dict[LineKey, Decimal]:
        """Latest effective price per (product_id, variant_id) pair that could be resolved."""
        items = list(items)
        product_ids = sorted({it.product_id for it in items})
        variant_ids = sorted({it.variant_id for it in items if it.variant_id})
        product_prices = self._product_prices(product_ids)
        variants_ok, variant_prices = self._variant_prices(variant_ids)

        result: Dict[LineKey, Decimal] = {}
        for it in items:
            latest: Optional[Decimal] = None
            if it.variant_id:
                if not variants_ok:
                    continue
                # variant without its own price sells at the product price
                latest = variant_prices.get(it.variant_id)
            if latest is None:
                latest = product_prices.get(it.product_id)
            if latest is not None:
                result[it.key] = latest
        return result

    def refresh_prices(self, items: Iterable[LineItem]) -> Tuple[LineItem, ...]:
        items = tuple(items)
        if not items:
            return items
        latest = self.fetch_prices(items)
        refreshed = []
        changed = 0
        for it in items:
            price = latest.get(it.key)
            if price is None:
                refreshed.append(replace(it, latest_price=None, price_changed=False))
                continue
            flag = price != it.price
            changed += int(flag)
            refreshed.append(replace(it, latest_price=price, price_changed=flag))
        if changed:
            log_event("info", "pricing.changed", items=changed)
        return tuple(refreshed)
