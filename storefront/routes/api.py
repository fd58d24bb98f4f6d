"""Cart, checkout summary and coupon JSON API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import Blueprint, current_app, jsonify, request, session

from ..common.errors import CartStoreError, CartValidationError
from ..common.services.cart_session import ERROR_STORE, ERROR_VALIDATION, CartSession
from ..common.services.cart_state import LineItem, new_local_id
from ..common.utils.dto import to_cart_dto, to_line_item_dto
from ..common.utils.validators import ensure_valid_price


api_bp = Blueprint("storefront_api", __name__, url_prefix="/api")


class SessionMirror:
    """Cart mirror kept in the signed session cookie."""

    def __init__(self, key: str) -> None:
        self._key = key

    def load(self) -> Optional[Any]:
        return session.get(self._key)

    def save(self, items: List[Dict[str, Any]]) -> None:
        session[self._key] = items

    def clear(self) -> None:
        session.pop(self._key, None)


def _components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def _config():
    return current_app.config["STOREFRONT_CONFIG"]


def _current_user_id() -> Optional[str]:
    return session.get("user_id") or None


def _cart_session() -> CartSession:
    components = _components()
    return CartSession(
        user_id=_current_user_id(),
        mirror=SessionMirror(_config().cart_session_key),
        cart_service=components["cart_service"],
        price_service=components["price_service"],
        shipping_service=components["shipping_service"],
        coupon_service=components["coupon_service"],
    )


def _loaded_cart_session() -> CartSession:
    cart = _cart_session()
    cart.load()
    return cart


def _status(result) -> int:
    if result.error == ERROR_VALIDATION:
        return 400
    if result.error == ERROR_STORE and not result.ok:
        return 503
    return 200


def _respond(result):
    return jsonify(to_cart_dto(result)), _status(result)


def _item_from_payload(payload: Dict[str, Any]) -> LineItem:
    try:
        quantity = int(payload.get("quantity", 1))
    except (TypeError, ValueError):
        raise CartValidationError("quantity must be an integer")
    try:
        price = ensure_valid_price(payload.get("price", "0"))
    except ValueError as exc:
        raise CartValidationError(str(exc))
    return LineItem(
        id=new_local_id(),
        product_id=str(payload.get("product_id") or "").strip(),
        variant_id=(str(payload["variant_id"]).strip() or None) if payload.get("variant_id") else None,
        quantity=quantity,
        price=price,
        name=str(payload.get("name") or ""),
        slug=str(payload.get("slug") or ""),
        image=str(payload.get("image") or ""),
        store_id=str(payload.get("store_id") or ""),
        store_name=str(payload.get("store_name") or ""),
        store_slug=str(payload.get("store_slug") or ""),
        category_id=payload.get("category_id") or None,
        variant_name=payload.get("variant_name") or None,
        options=dict(payload.get("options") or {}),
    )


@api_bp.get("/cart")
def get_cart():
    cart = _cart_session()
    return _respond(cart.load())


@api_bp.post("/cart/items")
def add_cart_item():
    payload = request.get_json(silent=True) or {}
    try:
        item = _item_from_payload(payload)
    except CartValidationError as exc:
        return jsonify({"ok": False, "message": str(exc)}), 400
    cart = _loaded_cart_session()
    return _respond(cart.add(item))


@api_bp.patch("/cart/items/<item_id>")
def update_cart_item(item_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        quantity = int(payload.get("quantity"))
    except (TypeError, ValueError):
        return jsonify({"ok": False, "message": "quantity must be an integer"}), 400
    cart = _loaded_cart_session()
    return _respond(cart.set_quantity(item_id, quantity))


@api_bp.delete("/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    cart = _loaded_cart_session()
    return _respond(cart.remove(item_id))


@api_bp.delete("/cart")
def clear_cart():
    cart = _loaded_cart_session()
    return _respond(cart.clear())


@api_bp.get("/cart/summary")
def cart_summary():
    cart = _cart_session()
    loaded = cart.load()
    summary = cart.summary(request.args.get("coupon"))
    return jsonify(
        {
            "ok": loaded.ok,
            "message": loaded.message,
            "currency": _config().currency,
            "items": [to_line_item_dto(it) for it in summary.items],
            "shipping": {
                "stores": [s.to_dict() for s in summary.shipping.stores],
                "total": float(summary.shipping.total),
            },
            "coupon": summary.coupon.to_dict() if summary.coupon else None,
            "totals": summary.totals.to_dict(),
        }
    ), _status(loaded)


@api_bp.post("/cart/coupon")
def apply_cart_coupon():
    payload = request.get_json(silent=True) or {}
    cart = _loaded_cart_session()
    result = _components()["coupon_service"].apply(payload.get("code"), cart.items)
    return jsonify(result.to_dict())


@api_bp.get("/coupons/wallet")
def list_wallet():
    user_id = _current_user_id()
    if not user_id:
        return jsonify({"ok": False, "message": "Please sign in to see your coupons."}), 401
    try:
        coupons = _components()["wallet_service"].list(user_id)
    except CartStoreError as exc:
        return jsonify({"ok": False, "message": str(exc)}), 503
    return jsonify({"ok": True, "coupons": coupons})


@api_bp.post("/coupons/wallet")
def add_to_wallet():
    user_id = _current_user_id()
    if not user_id:
        return jsonify({"ok": False, "message": "Please sign in to save coupons."}), 401
    payload = request.get_json(silent=True) or {}
    try:
        result = _components()["wallet_service"].add(user_id, payload.get("code"))
    except CartStoreError as exc:
        return jsonify({"ok": False, "message": str(exc)}), 503
    return jsonify(result), 200 if result.get("ok") else 400
