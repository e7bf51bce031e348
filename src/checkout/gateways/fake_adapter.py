"""Configurable fake collaborators for development and testing.

These adapters simulate the storefront's services in memory. Each one
records the calls it receives and can be configured at runtime to succeed,
refuse, or be unreachable, which makes failure and retry paths easy to
exercise by hand or in tests.
"""

from collections import deque
from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from checkout.address.address import SavedAddress
from checkout.gateways.port import (
    AddressBook,
    AnalyticsSink,
    CartService,
    CartSnapshot,
    DiscountService,
    DiscountSnapshot,
    OrderResult,
    OrderService,
    ServiceUnavailable,
    SettlementResult,
    SettlementService,
)
from checkout.totals.calculator import CartLine, to_money


_SHIPPING_FIELDS = (
    "shipping_name",
    "shipping_street",
    "shipping_city",
    "shipping_state",
    "shipping_zip",
    "shipping_country",
    "shipping_phone",
)


def _shipping_snapshot(payload: dict) -> dict:
    if "address_id" in payload:
        return {"address_id": payload["address_id"]}
    return {name: payload[name] for name in _SHIPPING_FIELDS if name in payload}


class FakeOrderService(OrderService):
    """Creates orders in memory and answers like the real Order Service."""

    def __init__(self, first_order_id: int = 1) -> None:
        self.next_order_id = first_order_id
        self.should_succeed: bool = True
        self.failure_message: str = "Order could not be created"
        self.unavailable: bool = False
        self.total_override: float | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_message: str = "Order could not be created",
        unavailable: bool = False,
        total_override: float | None = None,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_message = failure_message
        self.unavailable = unavailable
        self.total_override = total_override

    def create_order(self, payload: dict) -> OrderResult:
        self.calls.append(dict(payload))

        if self.unavailable:
            raise ServiceUnavailable("order_service", "connection refused")
        if not self.should_succeed:
            return OrderResult.from_response({"success": False, "message": self.failure_message})

        order_id = self.next_order_id
        self.next_order_id += 1

        subtotal = to_money(payload.get("subtotal", 0))
        shipping = to_money(payload.get("shipping_cost", 0))
        tax = to_money(payload.get("tax", 0))
        discount = min(to_money(payload.get("discount", 0)), subtotal)
        total = max(Decimal("0"), subtotal + shipping + tax - discount)
        if self.total_override is not None:
            total = to_money(self.total_override)

        return OrderResult.from_response(
            {
                "success": True,
                "message": "Order created",
                "data": {
                    "order": {
                        "id": order_id,
                        "order_number": f"RS-{order_id:08d}",
                        "status": "pending",
                        "total": float(total),
                        "subtotal": float(subtotal),
                        "shipping_cost": float(shipping),
                        "tax": float(tax),
                        "created_at": datetime.now(UTC).isoformat(),
                        "shipping_address": _shipping_snapshot(payload),
                    }
                },
            }
        )


class FakeSettlementService(SettlementService):
    """Settles payments in memory; never charges the same order twice."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "card_declined"
        self.unavailable: bool = False
        self.scripted: deque = deque()
        self.paid_orders: dict[str, str] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "card_declined",
        unavailable: bool = False,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unavailable = unavailable

    def script(self, *outcomes: bool) -> None:
        """Queue outcomes for the next calls; configured behavior applies once they run out."""
        self.scripted.extend(outcomes)

    def settle(
        self,
        order_id: str,
        amount: float,
        currency: str,
        payment_method: str | None,
        idempotency_key: str,
    ) -> SettlementResult:
        self.calls.append(
            {
                "order_id": order_id,
                "amount": amount,
                "currency": currency,
                "payment_method": payment_method,
                "idempotency_key": idempotency_key,
            }
        )

        if self.unavailable:
            raise ServiceUnavailable("settlement_service", "timed out")
        if order_id in self.paid_orders:
            return SettlementResult(success=False, failure_reason="order_already_paid")

        succeed = self.scripted.popleft() if self.scripted else self.should_succeed
        if not succeed:
            return SettlementResult(success=False, failure_reason=self.failure_reason)

        reference = f"fake_stl_{uuid4().hex[:12]}"
        self.paid_orders[order_id] = reference
        return SettlementResult(success=True, settlement_reference=reference)


class FakeCartService(CartService):
    def __init__(self) -> None:
        self.carts: dict[str, list[CartLine]] = {}
        self.fail_on_clear: bool = False
        self.cleared: list[str] = []

    def set_cart(self, customer_id: str, lines: list[CartLine]) -> None:
        self.carts[str(customer_id)] = list(lines)

    def get_cart(self, customer_id: str) -> CartSnapshot:
        return CartSnapshot(lines=list(self.carts.get(str(customer_id), [])))

    def clear_cart(self, customer_id: str) -> None:
        if self.fail_on_clear:
            raise ServiceUnavailable("cart_service", "cart could not be cleared")
        self.carts[str(customer_id)] = []
        self.cleared.append(str(customer_id))


class FakeDiscountService(DiscountService):
    def __init__(self) -> None:
        self.discounts: dict[str, DiscountSnapshot] = {}

    def set_discounts(self, customer_id: str, snapshot: DiscountSnapshot) -> None:
        self.discounts[str(customer_id)] = snapshot

    def get_discounts(self, customer_id: str) -> DiscountSnapshot:
        return self.discounts.get(str(customer_id), DiscountSnapshot())


class FakeAddressBook(AddressBook):
    def __init__(self) -> None:
        self.addresses: dict[str, list[SavedAddress]] = {}

    def set_addresses(self, customer_id: str, addresses: list[SavedAddress]) -> None:
        self.addresses[str(customer_id)] = list(addresses)

    def list_addresses(self, customer_id: str) -> list[SavedAddress]:
        return list(self.addresses.get(str(customer_id), []))


class RecordingSink(AnalyticsSink):
    """Analytics sink that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []
        self.should_fail: bool = False

    def track(self, name: str, properties: dict) -> None:
        if self.should_fail:
            raise ConnectionError("analytics endpoint unreachable")
        self.events.append((name, properties))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
