from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from ..db.session import get_session
from ..models.store import Store
from ..utils.money import to_amount
from .cart_state import LineItem
from .logging import log_event


@dataclass(frozen=True)
class StoreShippingInfo:
    store_id: str
    shipping_fee: Decimal = Decimal("0")
    free_shipping_threshold: Decimal = Decimal("0")


@dataclass(frozen=True)
class StoreShipping:
    store_id: str
    store_name: str
    subtotal: Decimal
    fee: Decimal
    threshold: Decimal
    is_free: bool

    def to_dict(self) -> Dict:
        return {
            "store_id": self.store_id,
            "store_name": self.store_name,
            "subtotal": float(self.subtotal),
            "fee": float(self.fee),
            "free_shipping_threshold": float(self.threshold),
            "is_free": self.is_free,
        }


@dataclass(frozen=True)
class ShippingQuote:
    stores: List[StoreShipping]
    total: Decimal

    def for_store(self, store_id: str) -> Optional[StoreShipping]:
        for s in self.stores:
            if s.store_id == store_id:
                return s
        return None


def compute_shipping(items: Iterable[LineItem], store_info: Mapping[str, StoreShippingInfo]) -> ShippingQuote:
    """Flat fee per store, waived when the store's subtotal reaches its threshold.

    A threshold of zero means the store has no free-shipping rule. Stores are
    independent: there is no consolidation across them.
    """
    groups: Dict[str, List[LineItem]] = {}
    for it in items:
        groups.setdefault(it.store_id, []).append(it)

    stores = []
    total = Decimal("0")
    for store_id, group in groups.items():
        info = store_info.get(store_id)
        fee = to_amount(info.shipping_fee) if info else Decimal("0")
        threshold = to_amount(info.free_shipping_threshold) if info else Decimal("0")
        group_subtotal = sum((it.line_total for it in group), Decimal("0"))
        is_free = threshold > 0 and group_subtotal >= threshold
        charged = Decimal("0") if is_free else fee
        total += charged
        stores.append(
            StoreShipping(
                store_id=store_id,
                store_name=group[0].store_name,
                subtotal=group_subtotal,
                fee=charged,
                threshold=threshold,
                is_free=is_free,
            )
        )
    return ShippingQuote(stores=stores, total=total)


class ShippingService:
    """Loads per-store shipping settings."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def fetch_store_info(self, store_ids: Iterable[str]) -> Dict[str, StoreShippingInfo]:
        ids = sorted({sid for sid in store_ids if sid})
        if not ids:
            return {}
        try:
            with self._session_factory() as session:
                rows = (
                    session.query(Store.id, Store.shipping_fee, Store.free_shipping_threshold)
                    .filter(Store.id.in_(ids))
                    .all()
                )
        except SQLAlchemyError as exc:
            # unknown settings are treated as no fee
            log_event("error", "shipping.fetch_failed", stores=len(ids), error=str(exc))
            return {}
        return {
            r.id: StoreShippingInfo(
                store_id=r.id,
                shipping_fee=to_amount(r.shipping_fee),
                free_shipping_threshold=to_amount(r.free_shipping_threshold),
            )
            for r in rows
        }

    def quote(self, items: Iterable[LineItem]) -> ShippingQuote:
        items = list(items)
        return compute_shipping(items, self.fetch_store_info(it.store_id for it in items))
