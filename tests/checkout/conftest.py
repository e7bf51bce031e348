from decimal import Decimal

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _collaborators(monkeypatch):
    """Fresh fake collaborators for every test, wired into the registries."""
    from checkout.analytics.emitter import EventEmitter, reset_emitter, set_emitter
    from checkout.gateways import (
        reset_gateways,
        set_address_book,
        set_cart_service,
        set_discount_service,
        set_order_service,
        set_settlement_service,
    )
    from checkout.gateways.fake_adapter import (
        FakeAddressBook,
        FakeCartService,
        FakeDiscountService,
        FakeOrderService,
        FakeSettlementService,
        RecordingSink,
    )

    for name in (
        "CHECKOUT_CURRENCY",
        "CHECKOUT_TAX_RATE",
        "CHECKOUT_FLAT_SHIPPING",
        "CHECKOUT_ORDER_SERVICE_URL",
        "CHECKOUT_SETTLEMENT_SERVICE_URL",
    ):
        monkeypatch.delenv(name, raising=False)

    fakes = {
        "orders": FakeOrderService(first_order_id=42),
        "settlement": FakeSettlementService(),
        "carts": FakeCartService(),
        "discounts": FakeDiscountService(),
        "addresses": FakeAddressBook(),
        "analytics": RecordingSink(),
    }
    set_order_service(fakes["orders"])
    set_settlement_service(fakes["settlement"])
    set_cart_service(fakes["carts"])
    set_discount_service(fakes["discounts"])
    set_address_book(fakes["addresses"])
    set_emitter(EventEmitter(sinks=[fakes["analytics"]]))

    yield fakes

    reset_gateways()
    reset_emitter()


@pytest.fixture()
def fakes(_collaborators):
    return _collaborators


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def cart_lines():
    from checkout.totals.calculator import CartLine

    return [
        CartLine(product_id="prod-001", name="Linen Shirt", unit_price=Decimal("60.00"), quantity=1),
        CartLine(product_id="prod-002", name="Canvas Tote", unit_price=Decimal("20.00"), quantity=2),
    ]


@pytest.fixture()
def stocked_cart(fakes, customer_id, cart_lines):
    """The customer has two products (100.00) in the cart."""
    fakes["carts"].set_cart(customer_id, cart_lines)
    return cart_lines


@pytest.fixture()
def inline_address():
    from checkout.address.address import InlineAddress

    return InlineAddress(
        first_name="Ada",
        last_name="Lovelace",
        street="12 Analytical Way",
        city="London",
        state="Greater London",
        postal_code="NW1 6XE",
        country="United Kingdom",
        phone="+44 20 7946 0958",
    )
