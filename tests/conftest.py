from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from storefront.app import create_app
from storefront.common.db.session import build_session_factory, init_db
from storefront.common.models import Category, Coupon, Product, ProductImage, ProductVariant, Store
from storefront.common.services import (
    CartService,
    CartSession,
    CouponService,
    MemoryMirror,
    PriceService,
    ShippingService,
)
from storefront.common.services.cart_state import LineItem, new_local_id
from storefront.config import AppConfig


@pytest.fixture
def session_factory():
    factory = build_session_factory("sqlite:///:memory:")
    init_db(factory.engine)
    yield factory
    factory.engine.dispose()


@pytest.fixture
def broken_session_factory():
    @contextmanager
    def broken():
        raise OperationalError("SELECT 1", {}, Exception("database unreachable"))
        yield  # pragma: no cover

    return broken


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        session.add_all(
            [
                Store(id="s1", name="Kitchen Corner", slug="kitchen-corner", shipping_fee=Decimal("15"), free_shipping_threshold=Decimal("100")),
                Store(id="s2", name="Garden House", slug=None, shipping_fee=Decimal("20"), free_shipping_threshold=Decimal("200")),
                Store(id="s3", name="Book Nook", slug="book-nook", shipping_fee=Decimal("10"), free_shipping_threshold=None),
                Category(id="c1", name="Kitchen", slug="kitchen"),
                Category(id="c2", name="Garden", slug="garden"),
            ]
        )
        session.flush()
        session.add_all(
            [
                Product(id="pa", store_id="s1", category_id="c1", name="Tea Pot", slug="tea-pot", price=Decimal("50")),
                Product(id="pb", store_id="s1", category_id="c1", name="Mug", slug="mug", price=Decimal("30")),
                Product(id="pc", store_id="s2", category_id="c2", name="Planter", slug=None, price=Decimal("100"), discount_price=Decimal("80")),
                Product(id="pd", store_id="s2", category_id="c2", name="Hose", slug="hose", price=Decimal("40")),
                Product(id="pe", store_id="s3", category_id=None, name="Novel", slug="novel", price=Decimal("12")),
                Product(id="pf", store_id="s3", category_id=None, name="Atlas", slug="atlas", price=Decimal("25"), is_active=False),
            ]
        )
        session.flush()
        session.add_all(
            [
                ProductVariant(id="vd-long", product_id="pd", name="25 m", options={"length": "25 m"}, price=Decimal("45")),
                ProductVariant(id="vd-short", product_id="pd", name="10 m", options={"length": "10 m"}, price=None),
                ProductImage(id="img-a", product_id="pa", url="/img/tea-pot.jpg", is_primary=True),
                Coupon(id="k1", code="SAVE10", discount_type="percentage", discount_value=Decimal("10")),
                Coupon(id="k2", code="FIXED50", discount_type="fixed_amount", discount_value=Decimal("50")),
                Coupon(
                    id="k3",
                    code="GARDEN10",
                    discount_type="percentage",
                    discount_value=Decimal("10"),
                    applicable_to="specific_categories",
                    applicable_category_ids=["c2"],
                ),
                Coupon(
                    id="k4",
                    code="TEAPOT5",
                    discount_type="fixed_amount",
                    discount_value=Decimal("5"),
                    applicable_to="specific_products",
                    applicable_product_ids=["pa"],
                ),
                Coupon(id="k5", code="BIG500", discount_type="percentage", discount_value=Decimal("20"), min_purchase_amount=Decimal("500")),
                Coupon(id="k6", code="EXPIRED", discount_type="percentage", discount_value=Decimal("50"), is_active=False),
            ]
        )
    return session_factory


def make_item(product_id, quantity=1, price="0", **fields) -> LineItem:
    fields.setdefault("id", new_local_id())
    return LineItem(product_id=product_id, quantity=quantity, price=Decimal(str(price)), **fields)


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def mirror():
    return MemoryMirror()


@pytest.fixture
def cart_session_factory(seeded, mirror):
    def build(user_id=None, *, cart_service=None, price_service=None, mirror_=None):
        return CartSession(
            user_id=user_id,
            mirror=mirror_ or mirror,
            cart_service=cart_service or CartService(seeded),
            price_service=price_service or PriceService(seeded),
            shipping_service=ShippingService(seeded),
            coupon_service=CouponService(seeded),
        )

    return build


@pytest.fixture
def app(seeded, tmp_path):
    config = AppConfig(
        database_url="sqlite:///:memory:",
        secret_key="test-secret",
        log_level="DEBUG",
        currency="TRY",
        data_dir=tmp_path,
    )
    app = create_app(config=config, session_factory=seeded)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
