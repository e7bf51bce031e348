"""Checkout collaborator factory.

Provides get_*() / set_*() / reset_*() to swap implementations:
- Fake adapters for development and testing
- HTTP adapters for the Order and Settlement services when their URLs are
  configured (``CHECKOUT_ORDER_SERVICE_URL``, ``CHECKOUT_SETTLEMENT_SERVICE_URL``)
"""

from checkout.gateways.fake_adapter import (
    FakeAddressBook,
    FakeCartService,
    FakeDiscountService,
    FakeOrderService,
    FakeSettlementService,
)
from checkout.gateways.http_adapter import HttpOrderService, HttpSettlementService
from checkout.gateways.port import (
    AddressBook,
    CartService,
    DiscountService,
    OrderService,
    SettlementService,
)
from checkout.settings import get_settings

_current_order_service: OrderService | None = None
_current_settlement_service: SettlementService | None = None
_current_cart_service: CartService | None = None
_current_discount_service: DiscountService | None = None
_current_address_book: AddressBook | None = None


def get_order_service() -> OrderService:
    """Return the current Order Service. Defaults to HTTP when configured, else a fake."""
    global _current_order_service
    if _current_order_service is None:
        settings = get_settings()
        if settings.order_service_url:
            _current_order_service = HttpOrderService(
                settings.order_service_url,
                api_token=settings.api_token,
                timeout=settings.http_timeout,
            )
        else:
            _current_order_service = FakeOrderService()
    return _current_order_service


def set_order_service(service: OrderService) -> None:
    global _current_order_service
    _current_order_service = service


def get_settlement_service() -> SettlementService:
    """Return the current Settlement Service. Defaults to HTTP when configured, else a fake."""
    global _current_settlement_service
    if _current_settlement_service is None:
        settings = get_settings()
        if settings.settlement_service_url:
            _current_settlement_service = HttpSettlementService(
                settings.settlement_service_url,
                api_token=settings.api_token,
                timeout=settings.http_timeout,
            )
        else:
            _current_settlement_service = FakeSettlementService()
    return _current_settlement_service


def set_settlement_service(service: SettlementService) -> None:
    global _current_settlement_service
    _current_settlement_service = service


def get_cart_service() -> CartService:
    global _current_cart_service
    if _current_cart_service is None:
        _current_cart_service = FakeCartService()
    return _current_cart_service


def set_cart_service(service: CartService) -> None:
    global _current_cart_service
    _current_cart_service = service


def get_discount_service() -> DiscountService:
    global _current_discount_service
    if _current_discount_service is None:
        _current_discount_service = FakeDiscountService()
    return _current_discount_service


def set_discount_service(service: DiscountService) -> None:
    global _current_discount_service
    _current_discount_service = service


def get_address_book() -> AddressBook:
    global _current_address_book
    if _current_address_book is None:
        _current_address_book = FakeAddressBook()
    return _current_address_book


def set_address_book(book: AddressBook) -> None:
    global _current_address_book
    _current_address_book = book


def reset_gateways() -> None:
    """Reset every collaborator to its default."""
    global _current_order_service, _current_settlement_service
    global _current_cart_service, _current_discount_service, _current_address_book
    _current_order_service = None
    _current_settlement_service = None
    _current_cart_service = None
    _current_discount_service = None
    _current_address_book = None
