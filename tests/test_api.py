import pytest

from storefront.common.errors import CartStoreError
from storefront.common.models import CartItem
from storefront.common.services import CartService


class UnreachableCarts(CartService):
    def get_or_create_cart(self, user_id):
        raise CartStoreError("database unreachable")


TEAPOT = {
    "product_id": "pa",
    "quantity": 2,
    "price": "50",
    "name": "Tea Pot",
    "store_id": "s1",
    "store_name": "Kitchen Corner",
    "category_id": "c1",
}


def _login(client, user_id="u1"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id


def test_anonymous_cart_lives_in_session(client):
    assert client.get("/api/cart").get_json()["items"] == []
    client.post("/api/cart/items", json=TEAPOT)
    data = client.post("/api/cart/items", json={**TEAPOT, "quantity": 1}).get_json()
    assert data["ok"] is True
    assert data["persisted"] is False
    assert data["item_count"] == 3
    assert len(data["items"]) == 1
    assert client.get("/api/cart").get_json()["item_count"] == 3


def test_invalid_quantity_is_rejected(client):
    resp = client.post("/api/cart/items", json={**TEAPOT, "quantity": 0})
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False


def test_summary_applies_coupon_and_shipping(client):
    client.post("/api/cart/items", json=TEAPOT)
    client.post("/api/cart/items", json={**TEAPOT, "product_id": "pb", "price": "30", "quantity": 1, "name": "Mug"})
    data = client.get("/api/cart/summary?coupon=save10").get_json()
    assert data["totals"] == {
        "subtotal": 130.0,
        "shipping": 0.0,
        "discount": 13.0,
        "total": 117.0,
        "item_count": 3,
    }
    assert data["coupon"]["code"] == "SAVE10"
    assert data["shipping"]["stores"][0]["is_free"] is True


def test_coupon_endpoint_rejects_scope_mismatch(client):
    client.post("/api/cart/items", json=TEAPOT)
    data = client.post("/api/cart/coupon", json={"code": "garden10"}).get_json()
    assert data["ok"] is False
    assert data["discount"] == 0.0


def test_quantity_update_and_removal(client):
    item_id = client.post("/api/cart/items", json=TEAPOT).get_json()["items"][0]["id"]
    data = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 5}).get_json()
    assert data["items"][0]["quantity"] == 5
    data = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0}).get_json()
    assert data["items"] == []


def test_signed_in_cart_is_persisted(client):
    _login(client)
    data = client.post("/api/cart/items", json=TEAPOT).get_json()
    assert data["persisted"] is True
    assert not data["items"][0]["id"].startswith("local-")
    item_id = data["items"][0]["id"]
    client.delete(f"/api/cart/items/{item_id}")
    assert client.get("/api/cart").get_json()["items"] == []


def test_clear_cart(client):
    client.post("/api/cart/items", json=TEAPOT)
    data = client.delete("/api/cart").get_json()
    assert data["ok"] is True
    assert data["items"] == []


def test_wallet_requires_sign_in(client):
    assert client.get("/api/coupons/wallet").status_code == 401
    assert client.post("/api/coupons/wallet", json={"code": "SAVE10"}).status_code == 401


def test_wallet_add_and_list(client):
    _login(client)
    assert client.post("/api/coupons/wallet", json={"code": " save10 "}).status_code == 200
    again = client.post("/api/coupons/wallet", json={"code": "SAVE10"})
    assert again.status_code == 400
    assert "already" in again.get_json()["message"]
    assert client.post("/api/coupons/wallet", json={"code": "EXPIRED"}).status_code == 400
    coupons = client.get("/api/coupons/wallet").get_json()["coupons"]
    assert [c["code"] for c in coupons] == ["SAVE10"]


@pytest.mark.parametrize("price", ["NaN", "Infinity", "-500", "cheap"])
def test_unusable_price_is_rejected(client, price):
    resp = client.post("/api/cart/items", json={**TEAPOT, "product_id": "ghost", "price": price})
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False
    summary = client.get("/api/cart/summary?coupon=SAVE10")
    assert summary.status_code == 200
    assert summary.get_json()["totals"]["subtotal"] == 0.0


def test_signed_in_add_of_unknown_product_is_rejected(client, seeded):
    _login(client)
    resp = client.post("/api/cart/items", json={**TEAPOT, "product_id": "ghost"})
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["ok"] is False
    assert data["items"] == []
    with seeded() as session:
        assert session.query(CartItem).count() == 0


def test_summary_reports_failed_load(app, client, seeded):
    app.extensions["storefront_components"]["cart_service"] = UnreachableCarts(seeded)
    _login(client)
    resp = client.get("/api/cart/summary")
    assert resp.status_code == 503
    data = resp.get_json()
    assert data["ok"] is False
    assert data["message"]
    assert data["totals"]["total"] == 0.0
