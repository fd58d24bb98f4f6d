from typing import Any, Dict


def to_line_item_dto(item: Any) -> Dict:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "quantity": item.quantity,
        "price": float(item.price),
        "unit_price": float(item.unit_price),
        "line_total": float(item.line_total),
        "price_changed": bool(item.price_changed),
        "name": item.name,
        "slug": item.slug,
        "image": item.image,
        "store_id": item.store_id,
        "store_name": item.store_name,
        "store_slug": item.store_slug,
        "category_id": item.category_id,
        "variant_name": item.variant_name,
        "options": dict(item.options or {}),
    }


def to_cart_dto(result: Any) -> Dict:
    cart = result.cart
    items = [to_line_item_dto(it) for it in cart.items]
    return {
        "ok": result.ok,
        "message": result.message,
        "local_only": result.local_only,
        "persisted": cart.is_persisted,
        "items": items,
        "item_count": sum(it["quantity"] for it in items),
        "subtotal": float(sum(it.line_total for it in cart.items)),
    }
