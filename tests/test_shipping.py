from decimal import Decimal

import pytest

from storefront.common.services import ShippingService, compute_shipping
from storefront.common.services.shipping_service import StoreShippingInfo

from .conftest import make_item


STORES = {
    "s1": StoreShippingInfo("s1", shipping_fee=Decimal("20"), free_shipping_threshold=Decimal("200")),
    "s2": StoreShippingInfo("s2", shipping_fee=Decimal("9.90"), free_shipping_threshold=Decimal("0")),
}


@pytest.mark.parametrize(
    "price, expected_fee",
    [("200", Decimal("0")), ("199.99", Decimal("20")), ("250", Decimal("0"))],
)
def test_free_shipping_threshold_boundary(price, expected_fee):
    quote = compute_shipping([make_item("p1", 1, price, store_id="s1")], STORES)
    assert quote.total == expected_fee
    assert quote.for_store("s1").is_free is (expected_fee == 0)


def test_zero_threshold_means_no_free_shipping():
    quote = compute_shipping([make_item("p1", 10, "1000", store_id="s2")], STORES)
    assert quote.total == Decimal("9.90")
    assert quote.for_store("s2").is_free is False


def test_each_store_is_charged_independently():
    items = [
        make_item("p1", 2, "60", store_id="s1"),
        make_item("p2", 1, "50", store_id="s1"),
        make_item("p3", 1, "5", store_id="s2"),
        make_item("p4", 1, "5", store_id="unknown"),
    ]
    quote = compute_shipping(items, STORES)
    assert quote.for_store("s1").subtotal == Decimal("170")
    assert quote.for_store("s1").fee == Decimal("20")
    assert quote.for_store("unknown").fee == Decimal("0")
    assert quote.total == Decimal("29.90")


def test_threshold_uses_latest_price():
    item = make_item("p1", 1, "150", store_id="s1", latest_price=Decimal("210"))
    assert compute_shipping([item], STORES).total == Decimal("0")


def test_service_reads_store_settings(seeded):
    quote = ShippingService(seeded).quote(
        [
            make_item("pa", 2, "50", store_id="s1"),
            make_item("pe", 1, "12", store_id="s3"),
        ]
    )
    assert quote.for_store("s1").is_free is True
    assert quote.for_store("s3").fee == Decimal("10")
    assert quote.total == Decimal("10")


def test_service_without_database_charges_nothing(broken_session_factory):
    quote = ShippingService(broken_session_factory).quote([make_item("pa", 1, "50", store_id="s1")])
    assert quote.total == Decimal("0")
